from __future__ import annotations

LANGUAGE_NAMES = {
    "el": "Greek",
    "en": "English",
    "gr": "Greek",
}

GREEK_THRESHOLD = 0.3

def _is_greek(ch: str) -> bool:
    cp = ord(ch)
    return 0x0370 <= cp <= 0x03FF or 0x1F00 <= cp <= 0x1FFF

def detect_language(text: str) -> str:
    greek = total = 0
    for ch in text or "":
        if ch.isspace():
            continue
        total += 1
        if _is_greek(ch):
            greek += 1
    if total == 0:
        return "en"
    return "el" if greek / total > GREEK_THRESHOLD else "en"

def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)

def other_language(code: str) -> str:
    return "en" if code == "el" else "el"

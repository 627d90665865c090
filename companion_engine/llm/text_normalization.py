"""Utilities for normalizing LLM text output."""

from __future__ import annotations

import re


_MOJIBAKE_REPLACEMENTS = {
    "â€™": "'",
    "â€˜": "'",
    "â€œ": "\"",
    "â€�": "\"",
    "â€”": "--",
    "â€“": "-",
    "â€¦": "...",
    "Â ": " ",
    "Â": "",
}

_LEADING_ROLE_LABEL = re.compile(r"^\s*(?:human|user|assistant)\s*:\s*", re.IGNORECASE)
_NEXT_USER_TURN = re.compile(r"\n\s*(?:human|user)\s*:", re.IGNORECASE)


def normalize_mojibake(text: str) -> str:
    """Normalize common mojibake sequences in LLM output.

    This is a conservative pass: if the text doesn't contain the common
    mojibake marker "â" or the replacement character, it returns unchanged.
    """
    if not text:
        return text

    if "â" not in text and "�" not in text:
        return text

    try:
        recovered = text.encode("latin-1").decode("utf-8")
        if recovered and recovered.count("�") <= text.count("�"):
            return recovered
    except (UnicodeEncodeError, UnicodeDecodeError):
        pass

    cleaned = text
    for bad, good in _MOJIBAKE_REPLACEMENTS.items():
        cleaned = cleaned.replace(bad, good)
    return cleaned


def clean_generated_text(text: str, character_name: str) -> str:
    """Strip echoed transcript labels from completion-style output.

    Keeps only what follows the last "<Name>:" label, drops a leading
    "Human:"/"User:"/"Assistant:" label, and cuts off any user turn the
    model started writing on its own.
    """
    cleaned = normalize_mojibake(text or "").strip()

    label = f"{character_name}:" if character_name else ""
    if label and label in cleaned:
        cleaned = cleaned.split(label)[-1].strip()

    cleaned = _LEADING_ROLE_LABEL.sub("", cleaned).strip()
    cleaned = _NEXT_USER_TURN.split(cleaned, maxsplit=1)[0].strip()
    return cleaned

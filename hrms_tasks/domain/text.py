from __future__ import annotations


def to_title_case(value: str | None) -> str:
    if not value:
        return ""
    return " ".join(word[:1].upper() + word[1:] for word in value.lower().split(" "))


def title_case_or_none(value: str | None) -> str | None:
    return to_title_case(value) if value else None

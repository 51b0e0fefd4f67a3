from typing import Annotated

from pydantic import AfterValidator, StringConstraints


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    local, _, domain = normalized.partition("@")
    if not local or "@" in domain or "." not in domain:
        raise ValueError("must be a valid email address")
    return normalized


RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
OptionalText = Annotated[str | None, AfterValidator(_blank_to_none)]
EmailText = Annotated[str, AfterValidator(_normalize_email)]
HexColor = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^#[0-9a-fA-F]{6}$")]

# Overview: Lookups over the permission table, keyed by code.

from .definitions import PERMISSION_DEFINITIONS

_BY_CODE = {code: (code, name, description, category) for code, name, description, category in PERMISSION_DEFINITIONS}


def get_all_permission_codes() -> list[str]:
    return list(_BY_CODE)


def get_permission_definition(code: str) -> dict | None:
    """{code, name, description, category} for a known code, else None."""
    entry = _BY_CODE.get(code)
    if entry is None:
        return None
    return dict(zip(("code", "name", "description", "category"), entry))


def validate_permission_code(code: str) -> bool:
    return code in _BY_CODE

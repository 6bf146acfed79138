"""Helpers for working with the credentials returned by the Sesame SSO server."""

from typing import Any, Dict, List, Optional

from ..errors import InvalidInputError


def get_api_url(region: str) -> str:
    """
    Get the Sesame API base URL for a region.

    Example:
        ``get_api_url("EU-4")`` returns ``"https://back-eu-4.sesametime.com"``

    Raises:
        InvalidInputError: If region is empty or not a string
    """
    if not region or not isinstance(region, str):
        raise InvalidInputError("Region is required and must be a string")
    return f"https://back-{region.lower()}.sesametime.com"


def get_employees(sesame_credentials: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Employee records linked to the user, or an empty list."""
    if not isinstance(sesame_credentials, dict):
        return []
    employees = sesame_credentials.get("employees")
    return employees if isinstance(employees, list) else []


def has_employees(sesame_credentials: Optional[Dict[str, Any]]) -> bool:
    return len(get_employees(sesame_credentials)) > 0


def has_multiple_employees(sesame_credentials: Optional[Dict[str, Any]]) -> bool:
    """True if the user belongs to more than one company (show a selector)."""
    return len(get_employees(sesame_credentials)) > 1


def get_first_employee(sesame_credentials: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    employees = get_employees(sesame_credentials)
    return employees[0] if employees else None

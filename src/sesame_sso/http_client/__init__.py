"""Client for the Sesame API, authenticated with SSO-issued credentials."""

from .helpers import (
    get_api_url,
    get_employees,
    get_first_employee,
    has_employees,
    has_multiple_employees,
)
from .sesame_client import SesameApiClient

__all__ = [
    "SesameApiClient",
    "get_api_url",
    "get_employees",
    "get_first_employee",
    "has_employees",
    "has_multiple_employees",
]

"""Google People API client."""

from gcontact_alpine.api.people_api import (
    MalformedResponseError,
    PeopleAPI,
    PeopleAPIError,
    RateLimitError,
)

__all__ = ["MalformedResponseError", "PeopleAPI", "PeopleAPIError", "RateLimitError"]

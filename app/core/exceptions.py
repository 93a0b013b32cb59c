from fastapi import HTTPException
from typing import Dict, Any, Optional, Union
from uuid import UUID


class APIException(HTTPException):
    def __init__(self, status_code: int, detail: Union[str, Dict[str, Any]], headers: Dict[str, Any] = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationException(APIException):
    def __init__(self, detail: str):
        super().__init__(status_code=422, detail=f"Validation Error: {detail}")


class AuthenticationException(APIException):
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


class NotFoundException(APIException):
    """Raised the same way for missing and foreign resources"""
    def __init__(self, detail: str = "Search query not found or access denied"):
        super().__init__(status_code=404, detail=detail)


class QuotaExceededException(APIException):
    def __init__(self, detail: str = "You have reached your monthly search quota. Please upgrade your plan."):
        super().__init__(status_code=429, detail={"error": "quota_exceeded", "message": detail})


class SearchFailedException(APIException):
    """Synchronous search ended in FAILED; the query id is still returned for polling"""
    def __init__(self, query_id: UUID, diagnostic: Optional[str] = None):
        self.query_id = query_id
        detail = {
            "error": "search_failed",
            "message": "Unable to fetch social media data at this time. Please try again later.",
            "query_id": str(query_id),
        }
        if diagnostic:
            detail["details"] = diagnostic
        super().__init__(status_code=502, detail=detail)


class BadRequestException(APIException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class ServiceUnavailableException(APIException):
    def __init__(self, detail: str = "Service temporarily unavailable"):
        super().__init__(status_code=503, detail=detail)


class PageCheckFailedException(APIException):
    """Content source could not scrape a monitored page"""
    def __init__(self, page_id: UUID, diagnostic: Optional[str] = None):
        detail = {
            "error": "page_check_failed",
            "message": "Unable to fetch social media data at this time. Please try again later.",
            "page_id": str(page_id),
        }
        if diagnostic:
            detail["details"] = diagnostic
        super().__init__(status_code=502, detail=detail)

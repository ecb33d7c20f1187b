"""Dependency injection for FastAPI endpoints"""

import logging
from typing import Any, Dict, Optional

from fastapi import Header, HTTPException, Query, Request

from deed_ledger.config import settings
from deed_ledger.domain.exceptions import NotFoundError, ValidationError


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_actor(x_actor: Optional[str] = Header(None)) -> str:
    """Who is making the change, for the audit log"""
    return (x_actor or "").strip() or settings.default_actor


def get_report_filters(
    status: Optional[str] = Query(None),
    origin_type: Optional[str] = Query(None),
    sale_type: Optional[str] = Query(None),
    county: Optional[str] = Query(None),
    property_id: Optional[str] = Query(None),
) -> Dict[str, Any]:
    """Contract filters shared by report endpoints; "all" disables a filter"""
    return {
        "status": status,
        "origin_type": origin_type,
        "sale_type": sale_type,
        "county": county,
        "property_id": property_id,
    }


def to_http_exception(error: Exception, request_id: str) -> HTTPException:
    """Map domain failures to HTTP status codes"""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ValidationError):
        logging.warning(f"Validation failed: {error.message}", extra={"request_id": request_id, "field": error.field})
        return HTTPException(status_code=422, detail={"message": error.message, "field": error.field})
    logging.error(f"Unexpected error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")

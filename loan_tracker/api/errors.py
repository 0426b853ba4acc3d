"""Translation of domain failures into HTTP errors"""

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException

from loan_tracker.domain.exceptions import (
    AuthenticationError,
    NotFoundError,
    StoreError,
    ValidationError,
)


@contextmanager
def domain_errors(action: str, request_id: str) -> Iterator[None]:
    """
    Map domain exceptions raised inside the block to HTTP responses.

    ValidationError -> 422, NotFoundError -> 404, AuthenticationError -> 401,
    StoreError -> 503, anything else -> 500. The detail carries the domain
    message so the client can show it next to the preserved form input.
    """
    try:
        yield
    except HTTPException:
        raise
    except ValidationError as e:
        logging.warning(f"{action} rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))
    except NotFoundError as e:
        logging.warning(f"{action} failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))
    except AuthenticationError as e:
        logging.warning(f"{action} unauthorized: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=401, detail=str(e))
    except StoreError as e:
        logging.error(f"{action} store error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logging.error(f"Unexpected error during {action}: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from datetime import datetime, timezone
import time
import logging

logger = logging.getLogger(__name__)


class FrontendHeadersMiddleware(BaseHTTPMiddleware):
    """
    Request logging plus timing headers for the frontend
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"
        logger.info(f"GLOBAL: {request.method} {request.url.path} from {client_ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"UNHANDLED EXCEPTION in {request.method} {request.url.path}: {type(e).__name__}: {str(e)}")
            raise

        process_time = time.time() - start_time

        if response.status_code >= 500:
            logger.error(f"   ERROR Response: {response.status_code} in {process_time:.3f}s")
        elif response.status_code >= 400:
            logger.warning(f"   WARNING Response: {response.status_code} in {process_time:.3f}s")
        else:
            logger.info(f"   SUCCESS Response: {response.status_code} in {process_time:.3f}s")

        response.headers["X-Process-Time"] = str(round(process_time, 3))
        response.headers["X-Timestamp"] = datetime.now(timezone.utc).isoformat()
        return response

"""
Base class for asynchronous API clients.
Provides standardized request handling and error logging.
"""

import asyncio
from abc import ABC
from typing import Dict, Any, Optional
from loguru import logger

from .request_utilities import (
    async_request,
    NetworkError,
    build_url_with_params,
)


class AsyncBaseAPI(ABC):
    """
    Base class for asynchronous API clients with common functionality.

    Provides:
    - Async HTTP request methods
    - Default headers merged into every request
    - Consistent error logging
    """

    def __init__(self, base_url: str, default_headers: Optional[Dict[str, str]] = None):
        """
        Initialize the async API client.

        Args:
            base_url: Base URL for API requests
            default_headers: Headers sent with every request
        """
        self.base_url = base_url
        self.default_headers = dict(default_headers or {})

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Dict[str, Any] = None,
        data: Dict[str, Any] = None,
        headers: Dict[str, Any] = None,
        timeout: Optional[float] = None
    ) -> Any:
        """
        Make an asynchronous request to the API.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint
            params: Query parameters
            data: JSON data for POST/PUT requests
            headers: Additional headers
            timeout: Request timeout in seconds

        Returns:
            Decoded response body

        Raises:
            NetworkError: On request failure
        """
        # Merge headers with defaults
        request_headers = self.default_headers.copy()
        if headers:
            request_headers.update(headers)

        # Build the URL
        url = build_url_with_params(self.base_url, endpoint, params)

        # Log the request (not including sensitive headers or query tokens)
        logger.debug(f"API Request: {method} {endpoint}")

        try:
            start_time = asyncio.get_running_loop().time()
            response = await async_request(
                method=method,
                url=url,
                headers=request_headers,
                json_data=data,
                timeout=timeout
            )
            elapsed = asyncio.get_running_loop().time() - start_time

            logger.debug(f"API Response received in {elapsed:.2f}s")

            return response

        except NetworkError as e:
            logger.error(f"API Error: {e.message} (Status: {e.status_code})")

            # Re-raise with additional context
            raise NetworkError(
                message=f"Error in {method} request to {endpoint}: {e.message}",
                status_code=e.status_code,
                response=e.response
            ) from e

    async def get(
        self,
        endpoint: str,
        params: Dict[str, Any] = None,
        **kwargs
    ) -> Any:
        """
        Make a GET request to the API.

        Args:
            endpoint: API endpoint
            params: Query parameters
            **kwargs: Additional arguments for request method

        Returns:
            Response data
        """
        return await self.request("GET", endpoint, params=params, **kwargs)

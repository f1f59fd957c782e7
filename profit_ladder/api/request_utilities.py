"""
Common utilities for HTTP request handling.
Provides the async request helper and the network error type shared by the API clients.
"""

import asyncio
import re
import urllib.parse
from typing import Dict, Any, Optional

import requests
from loguru import logger

# Query parameters carrying credentials
SECRET_QUERY_PATTERN = re.compile(r"(token|apikey|api_key)=[^&\s'\")]+", re.IGNORECASE)


def redact(text: str) -> str:
    """Mask credential query parameters in text that may contain a URL"""
    return SECRET_QUERY_PATTERN.sub(r"\1=***", text)


class NetworkError(Exception):
    """Exception raised for transport failures and non-2xx responses."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Any = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)


async def async_request(
    method: str,
    url: str,
    headers: Dict[str, str] = None,
    params: Dict[str, Any] = None,
    json_data: Dict[str, Any] = None,
    timeout: Optional[float] = None
) -> Any:
    """
    Make an asynchronous HTTP request and decode the JSON body.

    The request is issued once; callers decide what a failure means for them.

    Args:
        method: HTTP method (GET, POST, etc.)
        url: URL to request
        headers: Optional headers
        params: Optional query parameters
        json_data: Optional JSON data for POST requests
        timeout: Request timeout in seconds (None keeps the transport default)

    Returns:
        Parsed JSON response

    Raises:
        NetworkError: On transport failure, non-2xx status or undecodable body
    """
    loop = asyncio.get_running_loop()

    # Define the synchronous request function to run in executor
    def make_request():
        try:
            response = requests.request(
                method=method,
                url=url,
                headers=headers,
                params=params,
                json=json_data,
                timeout=timeout
            )

            # Check for HTTP errors
            response.raise_for_status()

            return response.json()

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            error_response = None
            if e.response is not None:
                try:
                    error_response = e.response.json()
                except ValueError:
                    error_response = e.response.text
            raise NetworkError(
                message=f"HTTP {status_code} for {method} {url.split('?')[0]}",
                status_code=status_code,
                response=error_response
            ) from e

        except requests.exceptions.RequestException as e:
            message = redact(f"Request failed: {str(e)}")
            logger.warning(message)
            raise NetworkError(message=message) from e

        except ValueError as e:
            raise NetworkError(message=f"Invalid JSON in response from {url.split('?')[0]}") from e

    # Run the request in a thread pool
    try:
        return await loop.run_in_executor(None, make_request)
    except NetworkError:
        raise
    except Exception as e:
        raise NetworkError(redact(f"Unexpected error during request: {str(e)}")) from e


def build_url_with_params(base_url: str, endpoint: str, params: Dict[str, Any] = None) -> str:
    """
    Build a URL with properly encoded query parameters.

    Args:
        base_url: Base URL
        endpoint: API endpoint
        params: Query parameters

    Returns:
        Full URL with encoded parameters
    """
    # Ensure there's no double slash between base_url and endpoint
    if base_url.endswith('/') and endpoint.startswith('/'):
        endpoint = endpoint[1:]
    elif not base_url.endswith('/') and not endpoint.startswith('/'):
        endpoint = '/' + endpoint

    url = base_url + endpoint

    # Add query parameters if provided
    if params:
        # Filter out None values
        filtered_params = {k: v for k, v in params.items() if v is not None}
        if filtered_params:
            query_string = urllib.parse.urlencode(filtered_params, safe=",")
            url = f"{url}?{query_string}"

    return url

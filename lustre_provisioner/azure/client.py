"""HTTP transport for the Azure Resource Manager API."""

from typing import Any, Callable, Dict, Iterator, List, Optional

import requests
from oslo_log import log as logging
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..context import RequestContext
from ..exceptions import DeadlineExceeded, Unavailable
from ..poller import LongRunningOperation, PollOutcome
from .errors import AzureResponseError

LOG = logging.getLogger(__name__)

DEFAULT_ARM_ENDPOINT = "https://management.azure.com"

ASYNC_OPERATION_HEADER = "Azure-AsyncOperation"
LOCATION_HEADER = "Location"

LRO_SUCCEEDED = "succeeded"
LRO_FAILED_STATES = ("failed", "canceled", "cancelled")


class ArmClient:
    """Session-backed client for ARM REST calls.

    Handles authentication, GET retries, error bodies, ``nextLink`` paging
    and long-running operation monitoring. Resource-specific clients build
    their paths on top of it.
    """

    def __init__(
        self,
        subscription_id: str,
        endpoint: str = DEFAULT_ARM_ENDPOINT,
        api_token: Optional[str] = None,
        timeout: int = 30,
        retry_count: int = 3,
        verify_ssl: bool = True,
        ca_bundle: Optional[str] = None,
    ):
        """Initialize ARM client.

        Args:
            subscription_id: Subscription all resource paths are scoped to
            endpoint: ARM endpoint URL
            api_token: Bearer token sent with every request
            timeout: HTTP request timeout in seconds
            retry_count: Number of retries for failed GET requests
            verify_ssl: Whether to verify SSL certificates
            ca_bundle: Path to CA bundle file for SSL verification

        Raises:
            ValueError: subscription_id is empty
        """
        if not subscription_id:
            raise ValueError("subscription_id is required")

        self.subscription_id = subscription_id
        self.base_url = endpoint.rstrip("/")
        self.timeout = timeout
        self.verify_ssl = ca_bundle if ca_bundle else verify_ssl

        self.session = requests.Session()
        if api_token:
            self.session.headers.update({"Authorization": f"Bearer {api_token}"})

        # Only GET is retried; PUT/DELETE/POST are sent once
        retry_strategy = Retry(
            total=retry_count,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if path.startswith("/"):
            return self.base_url + path
        return f"{self.base_url}/{path}"

    def _make_request(
        self,
        ctx: RequestContext,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """Send one request.

        Args:
            ctx: Request context bounding the HTTP timeout
            method: HTTP method
            path: API path relative to the endpoint, or an absolute URL
            json_data: Request body
            params: Query parameters

        Returns:
            The response, for status codes below 400

        Raises:
            AzureResponseError: ARM returned an error status
            DeadlineExceeded: ctx expired or was cancelled, or the request
                timed out
            Unavailable: Connection to the endpoint failed
            requests.exceptions.RequestException: Other transport failure
        """
        url = self._url(path)
        timeout = ctx.bound_timeout(self.timeout)

        LOG.debug("Making %s request to %s with params=%s", method, url, params)

        try:
            response = self.session.request(
                method=method,
                url=url,
                json=json_data,
                params=params,
                timeout=timeout,
                verify=self.verify_ssl,
            )
        except requests.exceptions.Timeout as e:
            LOG.error("Request timeout after %ss: %s %s", timeout, method, url)
            ctx.check()
            raise DeadlineExceeded(
                details="%s %s timed out after %ss: %s" % (method, url, timeout, e)
            ) from e
        except requests.exceptions.ConnectionError as e:
            LOG.error("Connection failed: %s %s, %s", method, url, e)
            ctx.check()
            raise Unavailable(
                details="failed to connect to %s: %s" % (self.base_url, e)
            ) from e
        except requests.exceptions.RequestException as e:
            LOG.error("Request exception: %s %s, %s", method, url, e)
            raise

        LOG.debug("Response status: %s", response.status_code)
        # Cancellation while the request was in flight surfaces here
        ctx.check()

        if response.status_code >= 400:
            error_code, error_message = self._parse_error(response)
            raise AzureResponseError(
                response.status_code,
                error_code=error_code,
                message=error_message,
                method=method,
                url=url,
            )
        return response

    @staticmethod
    def _parse_error(response: requests.Response):
        try:
            body = response.json()
        except ValueError:
            return "", response.text
        if not isinstance(body, dict):
            return "", response.text
        error = body.get("error") or {}
        if not isinstance(error, dict):
            return "", str(error)
        return error.get("code", ""), error.get("message", response.text)

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def request_json(
        self,
        ctx: RequestContext,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send a request and return the decoded body ({} when empty)."""
        return self._json(self._make_request(ctx, method, path, json_data, params))

    def list_pages(
        self, ctx: RequestContext, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Iterator[List[Dict[str, Any]]]:
        """Yield ``value`` arrays, following ``nextLink`` until exhausted."""
        next_link: Optional[str] = path
        while next_link:
            body = self.request_json(ctx, "GET", next_link, params=params)
            yield body.get("value", [])
            next_link = body.get("nextLink")
            # nextLink already carries the query string
            params = None

    def begin(
        self,
        ctx: RequestContext,
        method: str,
        path: str,
        params: Dict[str, Any],
        json_data: Optional[Dict[str, Any]] = None,
        final_result: Optional[Callable[[RequestContext], Any]] = None,
        description: str = "operation",
    ) -> LongRunningOperation:
        """Submit a mutation and return a handle to monitor it.

        The operation is monitored through the ``Azure-AsyncOperation``
        header when present, then the ``Location`` header, then the
        resource's own ``provisioningState``.

        Args:
            ctx: Request context for the submission
            method: PUT or DELETE
            path: Resource path
            params: Query parameters (api-version)
            json_data: Request body
            final_result: Loads the operation result once it succeeded
            description: Name used in log messages

        Returns:
            LongRunningOperation
        """
        response = self._make_request(ctx, method, path, json_data=json_data, params=params)
        LOG.info("Submitted %s (HTTP %s)", description, response.status_code)

        def load_result(poll_ctx: RequestContext) -> PollOutcome:
            result = final_result(poll_ctx) if final_result else None
            return PollOutcome(True, result)

        async_url = response.headers.get(ASYNC_OPERATION_HEADER)
        if async_url:
            return LongRunningOperation(
                self._async_operation_poller(async_url, load_result), description
            )

        location_url = response.headers.get(LOCATION_HEADER)
        if location_url and response.status_code == 202:
            return LongRunningOperation(
                self._location_poller(location_url, load_result), description
            )

        if method == "PUT":
            state = self._json(response).get("properties", {}).get("provisioningState")
            if state and state.lower() != LRO_SUCCEEDED:
                self._raise_if_failed(state, {}, path)
                return LongRunningOperation(
                    self._provisioning_state_poller(path, params, load_result), description
                )

        return LongRunningOperation(load_result, description)

    @staticmethod
    def _raise_if_failed(status: str, body: Dict[str, Any], url: str) -> None:
        if status.lower() in LRO_FAILED_STATES:
            error = body.get("error") or {}
            raise AzureResponseError(
                200,
                error_code=error.get("code", status),
                message=error.get("message", "long-running operation %s" % status),
                url=url,
            )

    def _async_operation_poller(self, url, load_result):
        def poll_once(ctx: RequestContext) -> PollOutcome:
            body = self.request_json(ctx, "GET", url)
            status = body.get("status", "")
            LOG.debug("Async operation %s status: %s", url, status)
            self._raise_if_failed(status, body, url)
            if status.lower() == LRO_SUCCEEDED:
                return load_result(ctx)
            return PollOutcome(False)

        return poll_once

    def _location_poller(self, url, load_result):
        def poll_once(ctx: RequestContext) -> PollOutcome:
            response = self._make_request(ctx, "GET", url)
            if response.status_code == 202:
                return PollOutcome(False)
            return load_result(ctx)

        return poll_once

    def _provisioning_state_poller(self, path, params, load_result):
        def poll_once(ctx: RequestContext) -> PollOutcome:
            body = self.request_json(ctx, "GET", path, params=params)
            state = body.get("properties", {}).get("provisioningState", "")
            LOG.debug("Resource %s provisioning state: %s", path, state)
            self._raise_if_failed(state, body, path)
            if state.lower() == LRO_SUCCEEDED:
                return load_result(ctx)
            return PollOutcome(False)

        return poll_once

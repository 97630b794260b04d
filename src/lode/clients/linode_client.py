"""Linode API v4 client for LKE operations."""

import json
from typing import Any

import requests

from lode.core.exceptions import (
    AuthError,
    ConflictError,
    NotFoundError,
    ProviderError,
    ProviderUnavailableError,
)
from lode.utils.logging import get_logger
from lode.utils.retry import retry_on_exception

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.linode.com/v4"
PAGE_SIZE = 100
IDEMPOTENT_METHODS = frozenset({"GET", "DELETE"})


class LinodeClient:
    """Thin client over the Linode REST API."""

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: int = 30,
        session: requests.Session | None = None,
    ):
        """Initialize Linode client.

        Args:
            token: Personal access token with LKE read/write scope
            api_url: API base URL
            timeout: Per-request timeout (seconds)
            session: Existing requests session (optional)
        """
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": "lode",
            }
        )
        logger.debug("linode_client_initialized", api_url=self.api_url)

    @staticmethod
    def _error_reasons(response: requests.Response) -> str:
        """Flatten the API's ``errors`` envelope into one message."""
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason or str(response.status_code)

        reasons = []
        for error in body.get("errors", []) if isinstance(body, dict) else []:
            reason = error.get("reason", "unknown error")
            if error.get("field"):
                reason = f"{error['field']}: {reason}"
            reasons.append(reason)
        return "; ".join(reasons) or response.reason or str(response.status_code)

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send one API request and return the decoded body.

        Transient failures are retried for GET and DELETE only. A POST that
        timed out may still have been applied, so it is never resent.

        Raises:
            AuthError: On 401/403
            NotFoundError: On 404
            ConflictError: On 409
            ProviderUnavailableError: On 429/5xx or connection failures
            ProviderError: On any other rejection
        """
        kwargs = {"params": params, "json_body": json_body, "headers": headers}
        if method.upper() in IDEMPOTENT_METHODS:
            return self._send_with_retry(method, path, **kwargs)
        return self._send(method, path, **kwargs)

    @retry_on_exception(exceptions=(ProviderUnavailableError,), max_attempts=3)
    def _send_with_retry(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        return self._send(method, path, **kwargs)

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.api_url}/{path.lstrip('/')}"

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("linode_request_unreachable", method=method, path=path, error=str(e))
            raise ProviderUnavailableError(f"{method} {path} failed: {e}") from e

        status = response.status_code
        if status < 400:
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise ProviderError(f"{method} {path} returned invalid JSON") from e

        message = f"{method} {path} failed ({status}): {self._error_reasons(response)}"
        logger.error("linode_request_failed", method=method, path=path, status=status)

        if status in (401, 403):
            raise AuthError(message)
        if status == 404:
            raise NotFoundError(message)
        if status == 409:
            raise ConflictError(message)
        if status == 429 or status >= 500:
            raise ProviderUnavailableError(message)
        raise ProviderError(message)

    def list_lke_clusters(self, label: str | None = None) -> list[dict[str, Any]]:
        """List LKE clusters, optionally filtered by label.

        Args:
            label: Exact label to match (optional)

        Returns:
            List of cluster objects
        """
        headers = {"X-Filter": json.dumps({"label": label})} if label else None
        clusters: list[dict[str, Any]] = []
        page = 1

        while True:
            body = self.request(
                "GET",
                "/lke/clusters",
                params={"page": page, "page_size": PAGE_SIZE},
                headers=headers,
            )
            clusters.extend(body.get("data", []))
            if page >= body.get("pages", 1):
                break
            page += 1

        if label:
            clusters = [c for c in clusters if c.get("label") == label]

        logger.debug("lke_clusters_listed", count=len(clusters), label=label)
        return clusters

    def create_lke_cluster(
        self,
        label: str,
        region: str,
        k8s_version: str,
        node_pools: list[dict[str, Any]],
        tags: list[str] | None = None,
    ) -> dict[str, Any]:
        """Create an LKE cluster.

        Returns:
            Created cluster object
        """
        logger.info("creating_lke_cluster", label=label, region=region, k8s_version=k8s_version)
        body = {
            "label": label,
            "region": region,
            "k8s_version": k8s_version,
            "node_pools": node_pools,
        }
        if tags:
            body["tags"] = tags
        return self.request("POST", "/lke/clusters", json_body=body)

    def list_lke_node_pools(self, cluster_id: int) -> list[dict[str, Any]]:
        """List node pools, each with its nodes and their status."""
        return self.request("GET", f"/lke/clusters/{cluster_id}/pools").get("data", [])

    def list_lke_api_endpoints(self, cluster_id: int) -> list[str]:
        """List control-plane endpoints."""
        body = self.request("GET", f"/lke/clusters/{cluster_id}/api-endpoints")
        return [entry["endpoint"] for entry in body.get("data", []) if entry.get("endpoint")]

    def get_lke_kubeconfig(self, cluster_id: int) -> str:
        """Get the base64-encoded kubeconfig.

        Raises:
            ProviderUnavailableError: While the cluster is still being built
        """
        return self.request("GET", f"/lke/clusters/{cluster_id}/kubeconfig").get("kubeconfig", "")

    def delete_lke_cluster(self, cluster_id: int) -> None:
        """Delete an LKE cluster and its node pools."""
        logger.info("deleting_lke_cluster", cluster_id=cluster_id)
        self.request("DELETE", f"/lke/clusters/{cluster_id}")

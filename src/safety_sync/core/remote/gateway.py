"""Clients for the remote store holding shared workspace snapshots.

Two backends sit behind the same interface:
- Blob store: a keyed JSON resource read with GET and overwritten with PUT
- Webhook: a spreadsheet-backed web app reached with ``?id=<ws>&action=...``
  whose push responses cannot be read

Neither backend offers read-modify-write atomicity. Both report an empty or
missing workspace as ``None`` from ``pull`` rather than raising. Server errors
raise, so callers never mistake an outage for an empty workspace.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional

import requests

from ..sync.codec import (
    Snapshot,
    SnapshotDecodeError,
    decode_snapshot,
    encode_snapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_BLOB_URL = "https://jsonblob.com/api/jsonBlob"
DEFAULT_TIMEOUT_S = 10.0

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}

# Statuses meaning the blob does not exist (yet); anything else non-2xx is an error
EMPTY_STATUSES = frozenset({404, 410})


class RemoteMode(str, Enum):
    """Supported remote backends."""

    BLOB = "blob"
    WEBHOOK = "webhook"


class PushOutcome(str, Enum):
    """What is known about a push after it was sent."""

    CONFIRMED = "confirmed"
    UNKNOWN = "unknown"


class RemoteGatewayError(Exception):
    """Raised on transport failures, timeouts and rejected writes."""


class RemoteGateway(ABC):
    """Interface to the remote store."""

    def __init__(
        self,
        base_url: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize remote gateway.

        Args:
            base_url: Endpoint of the remote store
            timeout_s: Timeout applied to every request
            session: Optional requests session (a new one if None)
        """
        self.base_url = base_url.strip().rstrip("/")
        self.timeout_s = timeout_s
        self.session = session or requests.Session()

    @abstractmethod
    def pull(self, workspace_id: str) -> Optional[Snapshot]:
        """Fetch the workspace snapshot.

        Returns:
            Snapshot, or None if the workspace holds no data

        Raises:
            RemoteGatewayError: On transport failure or malformed payload
        """

    @abstractmethod
    def push(self, workspace_id: str, snapshot: Snapshot) -> PushOutcome:
        """Write the workspace snapshot.

        Raises:
            RemoteGatewayError: On transport failure or a rejected write
        """

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout_s, **kwargs)
        except requests.exceptions.Timeout as e:
            raise RemoteGatewayError(
                f"{method} {url} timed out after {self.timeout_s}s"
            ) from e
        except requests.exceptions.RequestException as e:
            raise RemoteGatewayError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _decode(response: requests.Response) -> Optional[Snapshot]:
        try:
            return decode_snapshot(response.content)
        except SnapshotDecodeError as e:
            raise RemoteGatewayError(f"malformed snapshot: {e}") from e

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()


class BlobStoreGateway(RemoteGateway):
    """Keyed JSON blob resource: POST to create, GET to read, PUT to overwrite."""

    def __init__(
        self,
        base_url: str = DEFAULT_BLOB_URL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize blob store gateway."""
        super().__init__(base_url, timeout_s=timeout_s, session=session)

    def _blob_url(self, workspace_id: str) -> str:
        return f"{self.base_url}/{workspace_id}"

    def create(self, snapshot: Snapshot) -> str:
        """Allocate a new workspace holding ``snapshot``.

        Returns:
            The new workspace id, taken from the ``Location`` header

        Raises:
            RemoteGatewayError: If the store did not return a location
        """
        response = self._request(
            "POST",
            self.base_url,
            data=encode_snapshot(snapshot).encode("utf-8"),
            headers=JSON_HEADERS,
        )
        location = response.headers.get("Location")
        if not response.ok or not location:
            raise RemoteGatewayError(
                f"could not create workspace (HTTP {response.status_code})"
            )
        workspace_id = location.rstrip("/").split("/")[-1]
        if not workspace_id:
            raise RemoteGatewayError(f"unusable location header: {location}")
        logger.info("Created remote workspace %s", workspace_id)
        return workspace_id

    def pull(self, workspace_id: str) -> Optional[Snapshot]:
        """Fetch the blob; a missing or deleted blob counts as no data.

        Raises:
            RemoteGatewayError: On any other non-success status
        """
        response = self._request(
            "GET", self._blob_url(workspace_id), headers=JSON_HEADERS
        )
        if response.status_code in EMPTY_STATUSES:
            logger.debug(
                "Pull of %s returned HTTP %d, treating as empty",
                workspace_id,
                response.status_code,
            )
            return None
        if not response.ok:
            raise RemoteGatewayError(
                f"pull of {workspace_id} failed (HTTP {response.status_code})"
            )
        return self._decode(response)

    def push(self, workspace_id: str, snapshot: Snapshot) -> PushOutcome:
        """Overwrite the blob with ``snapshot``."""
        response = self._request(
            "PUT",
            self._blob_url(workspace_id),
            data=encode_snapshot(snapshot).encode("utf-8"),
            headers=JSON_HEADERS,
        )
        if not response.ok:
            raise RemoteGatewayError(
                f"push to {workspace_id} rejected (HTTP {response.status_code})"
            )
        return PushOutcome.CONFIRMED


class WebhookGateway(RemoteGateway):
    """Spreadsheet-backed web app addressed by workspace and action parameters.

    Pushes are fire-and-forget: the response is never inspected, so a push that
    reaches the server reports ``PushOutcome.UNKNOWN``. Convergence is confirmed
    by the next pull.
    """

    def _params(self, workspace_id: str, action: str) -> Dict[str, str]:
        return {"id": workspace_id, "action": action}

    def pull(self, workspace_id: str) -> Optional[Snapshot]:
        """Read the workspace; a body of ``{}`` means a new workspace."""
        response = self._request(
            "GET",
            self.base_url,
            params=self._params(workspace_id, "pull"),
            headers={"Accept": "application/json"},
        )
        if not response.ok:
            raise RemoteGatewayError(
                f"pull of {workspace_id} failed (HTTP {response.status_code})"
            )
        return self._decode(response)

    def push(self, workspace_id: str, snapshot: Snapshot) -> PushOutcome:
        """Send the snapshot without reading the response."""
        # text/plain keeps the request "simple" for web app endpoints
        self._request(
            "POST",
            self.base_url,
            params=self._params(workspace_id, "push"),
            data=encode_snapshot(snapshot).encode("utf-8"),
            headers={"Content-Type": "text/plain;charset=utf-8"},
        )
        return PushOutcome.UNKNOWN


def build_gateway(
    mode: str,
    base_url: Optional[str] = None,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> RemoteGateway:
    """Create the gateway for a remote mode.

    Args:
        mode: ``blob`` or ``webhook``
        base_url: Endpoint; required for webhook mode
        timeout_s: Request timeout in seconds

    Raises:
        ValueError: On an unknown mode or a missing webhook URL
    """
    try:
        remote_mode = RemoteMode(mode.lower())
    except ValueError as e:
        raise ValueError(f"unknown remote mode: {mode}") from e

    if remote_mode == RemoteMode.BLOB:
        return BlobStoreGateway(base_url or DEFAULT_BLOB_URL, timeout_s=timeout_s)
    if not base_url:
        raise ValueError("webhook mode requires a remote URL")
    return WebhookGateway(base_url, timeout_s=timeout_s)

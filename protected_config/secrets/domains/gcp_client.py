"""GCP Secret Manager access for the optional protection key secret."""
import os
import logging
from typing import Optional
from google.cloud import secretmanager

logger = logging.getLogger(__name__)


class GCPSecretClient:
    """Wrapper around GCP Secret Manager client."""

    def __init__(self):
        self._client = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def resolve_project_id(self, configured: Optional[str] = None) -> Optional[str]:
        """
        Pick the GCP project holding the key secret.

        Priority order:
        1. GCP_PROJECT environment variable (allows override)
        2. protection.key_secret.project_id from settings

        Returns:
            Project ID string, or None if not found
        """
        gcp_project_env = os.getenv("GCP_PROJECT")
        if gcp_project_env:
            logger.debug(f"Using GCP_PROJECT from environment: {gcp_project_env}")
            return gcp_project_env

        if configured:
            logger.debug(f"Using project_id from settings: {configured}")
            return configured

        logger.error("Project ID not found. Set GCP_PROJECT or protection.key_secret.project_id in settings")
        return None

    def fetch_secret(self, secret_name: str, project_id: str) -> Optional[bytes]:
        """
        Fetch the latest version of a secret payload.

        Args:
            secret_name: Name of the secret
            project_id: GCP project ID

        Returns:
            Raw payload bytes, or None if the fetch fails
        """
        try:
            name = f"projects/{project_id}/secrets/{secret_name}/versions/latest"
            response = self.client.access_secret_version(request={"name": name})
            return response.payload.data
        except Exception as e:
            logger.warning(f"GCP fetch failed for {secret_name}: {e}")
            return None

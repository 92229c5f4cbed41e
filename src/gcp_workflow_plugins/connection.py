"""
Storage client construction from the trigger's GCP parameters.
"""

import json
import logging
from typing import List, Optional

import google.auth
from google.cloud import storage
from google.oauth2 import service_account as service_account_credentials

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def build_storage_client(
    project_id: Optional[str] = None,
    service_account: Optional[str] = None,
    scopes: Optional[List[str]] = None,
) -> storage.Client:
    """
    Create a GCS client.

    Args:
        project_id: Project to bill (defaults to the credentials' project)
        service_account: Service account key JSON content; Application
            Default Credentials are used when omitted
        scopes: OAuth scopes

    Returns:
        storage.Client

    Raises:
        ConfigurationError: If the service account key is malformed
    """
    if service_account:
        try:
            info = json.loads(service_account)
            credentials = service_account_credentials.Credentials.from_service_account_info(info, scopes=scopes)
        except ValueError as e:
            raise ConfigurationError(f"Invalid service account key: {e}") from e

        project = project_id or info.get("project_id")
        logger.info(f"Using service account {info.get('client_email', '<unknown>')}")
    else:
        credentials, default_project = google.auth.default(scopes=scopes)
        project = project_id or default_project

    return storage.Client(project=project, credentials=credentials)

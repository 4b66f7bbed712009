"""
Authentication handling for Azure DevOps
Supports Azure Managed Identity, Service Principal and Personal Access Tokens
"""
import asyncio
import logging
import os
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Optional

from azure.devops.connection import Connection
from azure.identity import DefaultAzureCredential, ClientSecretCredential
from msrest.authentication import BasicAuthentication

from .log_sanitizer import safe_log_error

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_personal_access_token() -> Optional[str]:
    """PAT from AZURE_DEVOPS_PAT, falling back to AZURE_PERSONAL_ACCESS_TOKEN"""
    return os.getenv("AZURE_DEVOPS_PAT") or os.getenv("AZURE_PERSONAL_ACCESS_TOKEN")


class AzureDevOpsAuth:
    """
    Handles authentication to Azure DevOps, trying in order:
    1. Managed Identity / DefaultAzureCredential
    2. Service Principal
    3. Personal Access Token
    """

    # Azure DevOps resource ID for token acquisition
    AZURE_DEVOPS_RESOURCE_ID = "499b84ac-1321-427f-aa17-267ca6975798"

    CLIENT_FACTORIES = {
        'work_item_tracking': 'get_work_item_tracking_client',
        'wiki': 'get_wiki_client',
    }

    def __init__(self, organization_url: str):
        """
        Args:
            organization_url: Azure DevOps organization URL
                              (e.g., https://dev.azure.com/yourorg)
        """
        if not organization_url:
            raise ValueError("organization_url must be set")

        self.organization_url = organization_url.rstrip('/')
        self.connection: Optional[Connection] = None
        self._credential = None
        self._auth_method = None

        self._auth_failures = defaultdict(int)
        self._auth_failure_log = deque(maxlen=100)
        self._last_auth_attempt = None
        self._last_auth_success = None

    async def initialize(self):
        """Establish the connection using the first method that works"""
        auth_methods = [
            self._try_managed_identity,
            self._try_service_principal,
            self._try_pat
        ]

        self._last_auth_attempt = _utcnow()

        for auth_method in auth_methods:
            try:
                self.connection = await auth_method()
            except Exception as e:
                method_name = auth_method.__name__
                self._auth_failures[method_name] += 1
                self._auth_failure_log.append({
                    'method': method_name,
                    'timestamp': _utcnow().isoformat(),
                    'error_type': type(e).__name__
                })
                logger.warning(safe_log_error(e, method_name))
                continue

            if self.connection:
                self._last_auth_success = _utcnow()
                logger.info(f"Authenticated to {self.organization_url} using: {self._auth_method}")
                return

        raise ValueError(
            "Failed to authenticate. Please configure one of:\n"
            "1. Azure Managed Identity or Azure CLI login\n"
            "2. Service Principal (AZURE_CLIENT_ID, AZURE_CLIENT_SECRET, AZURE_TENANT_ID)\n"
            "3. Personal Access Token (AZURE_DEVOPS_PAT)"
        )

    async def _connect_with_credential(self, credential, method_name: str) -> Connection:
        """Exchange an azure-identity credential for an Azure DevOps connection"""
        token = await asyncio.to_thread(
            credential.get_token,
            f"{self.AZURE_DEVOPS_RESOURCE_ID}/.default"
        )

        # Azure DevOps accepts the bearer token in place of a PAT
        self._credential = credential
        self._auth_method = method_name
        return Connection(base_url=self.organization_url, creds=BasicAuthentication('', token.token))

    async def _try_managed_identity(self) -> Optional[Connection]:
        """
        DefaultAzureCredential covers managed identity on Azure hosts and
        Azure CLI login for local development.
        """
        return await self._connect_with_credential(
            DefaultAzureCredential(),
            "Azure Managed Identity / DefaultAzureCredential"
        )

    async def _try_service_principal(self) -> Optional[Connection]:
        """Requires AZURE_CLIENT_ID, AZURE_CLIENT_SECRET and AZURE_TENANT_ID"""
        client_id = os.getenv("AZURE_CLIENT_ID")
        client_secret = os.getenv("AZURE_CLIENT_SECRET")
        tenant_id = os.getenv("AZURE_TENANT_ID")

        if not all([client_id, client_secret, tenant_id]):
            raise ValueError("Missing service principal credentials")

        credential = ClientSecretCredential(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret
        )
        return await self._connect_with_credential(credential, "Service Principal")

    async def _try_pat(self) -> Optional[Connection]:
        """Requires AZURE_DEVOPS_PAT (or AZURE_PERSONAL_ACCESS_TOKEN)"""
        pat = get_personal_access_token()

        if not pat:
            raise ValueError("AZURE_DEVOPS_PAT environment variable not set")

        self._auth_method = "Personal Access Token"
        return Connection(base_url=self.organization_url, creds=BasicAuthentication('', pat))

    def get_client(self, client_type: str):
        """
        Get an Azure DevOps SDK client

        Args:
            client_type: 'work_item_tracking' or 'wiki'
        """
        if not self.connection:
            raise RuntimeError("Not authenticated. Call initialize() first.")

        if client_type not in self.CLIENT_FACTORIES:
            raise ValueError(f"Unknown client type: {client_type}")

        factory = getattr(self.connection.clients, self.CLIENT_FACTORIES[client_type])
        return factory()

    async def close(self):
        """Release the credential and drop the connection"""
        if hasattr(self._credential, 'close'):
            self._credential.close()

        self.connection = None

    def get_auth_info(self) -> dict:
        return {
            "method": self._auth_method,
            "organization_url": self.organization_url,
            "authenticated": self.connection is not None
        }

    def get_auth_failure_stats(self) -> dict:
        return {
            "total_failures_by_method": dict(self._auth_failures),
            "total_failures": sum(self._auth_failures.values()),
            "recent_failures": list(self._auth_failure_log)[-10:],
            "last_auth_attempt": self._last_auth_attempt.isoformat() if self._last_auth_attempt else None,
            "last_auth_success": self._last_auth_success.isoformat() if self._last_auth_success else None,
            "currently_authenticated": self.connection is not None
        }

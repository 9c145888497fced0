"""Parameter store backed by GCP Secret Manager.

Mapping onto Secret Manager concepts:
- parameter      -> secret ``projects/{project}/secrets/{name}``
- value          -> payload of the latest secret version
- description    -> secret annotation ``description``
- tier           -> secret annotation ``tier``
- key_id         -> customer-managed encryption key for automatic replication
- tags           -> secret labels
"""
import logging
import os
import re
from typing import Any, Dict, Iterable, Iterator, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager

from .config_loader import ConfigError, load_config
from .errors import ValidationError
from .models import Tag
from .store import ParameterAlreadyExists, ParameterNotFound, StoredParameter

logger = logging.getLogger(__name__)

# Secret Manager label rules
LABEL_KEY_PATTERN = re.compile(r"^[a-z][a-z0-9_-]{0,62}$")
LABEL_VALUE_PATTERN = re.compile(r"^[a-z0-9_-]{0,63}$")
MAX_LABELS = 64


class GCPParameterStore:
    """Store adapter over the Secret Manager service client."""

    def __init__(self, project_id: Optional[str] = None, client=None):
        self._project_id = project_id
        self._client = client
        self._config: Optional[Dict[str, Any]] = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            self._configure_credentials()
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def _get_config(self) -> Dict[str, Any]:
        """Load configuration on first use so CLI help runs without a config file."""
        if self._config is None:
            try:
                self._config = load_config()
            except FileNotFoundError as e:
                raise ConfigError(str(e))
        return self._config

    def _configure_credentials(self) -> None:
        """Export the configured service account unless credentials are already set."""
        if os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
            return
        try:
            config = self._get_config()
        except ConfigError as e:
            logger.warning(f"No config loaded, relying on application default credentials: {e}")
            return
        sa_path = config['authentication']['service_account_path']
        os.environ['GOOGLE_APPLICATION_CREDENTIALS'] = sa_path
        logger.info(f"Set GOOGLE_APPLICATION_CREDENTIALS from config: {sa_path}")

    @property
    def project_id(self) -> str:
        """
        GCP project that holds the parameters.

        Priority order:
        1. Explicit constructor argument
        2. GCP_PROJECT environment variable
        3. Config file ``gcp.project_id``

        Raises:
            ConfigError: If no source provides a project id
        """
        if self._project_id:
            return self._project_id

        gcp_project_env = os.getenv("GCP_PROJECT")
        if gcp_project_env:
            logger.debug(f"Using GCP_PROJECT from environment: {gcp_project_env}")
            self._project_id = gcp_project_env
            return self._project_id

        self._project_id = self._get_config()['gcp']['project_id']
        logger.debug(f"Using project_id from config: {self._project_id}")
        return self._project_id

    def _parent(self) -> str:
        return f"projects/{self.project_id}"

    def _secret_path(self, name: str) -> str:
        return f"{self._parent()}/secrets/{name}"

    @staticmethod
    def _annotations(description: Optional[str], tier: Optional[str]) -> Dict[str, str]:
        annotations = {}
        if description is not None:
            annotations["description"] = description
        if tier is not None:
            annotations["tier"] = tier
        return annotations

    def _get_secret(self, name: str):
        try:
            return self.client.get_secret(request={"name": self._secret_path(name)})
        except gcp_exceptions.NotFound:
            raise ParameterNotFound(f"Parameter '{name}' not found")

    def get(self, name: str) -> StoredParameter:
        """
        Fetch a parameter and its latest value.

        Raises:
            ParameterNotFound: If the secret or its latest version does not exist
        """
        secret = self._get_secret(name)
        try:
            version = self.client.access_secret_version(
                request={"name": f"{self._secret_path(name)}/versions/latest"}
            )
        except gcp_exceptions.NotFound:
            raise ParameterNotFound(f"Parameter '{name}' has no value")

        annotations = dict(secret.annotations or {})
        return StoredParameter(
            name=name,
            value=version.payload.data.decode("UTF-8"),
            arn=secret.name,
            description=annotations.get("description"),
            tier=annotations.get("tier"),
        )

    def _create_secret(
        self,
        name: str,
        description: Optional[str],
        key_id: Optional[str],
        tier: Optional[str],
    ) -> None:
        automatic: Dict[str, Any] = {}
        if key_id:
            automatic["customer_managed_encryption"] = {"kms_key_name": key_id}
        self.client.create_secret(
            request={
                "parent": self._parent(),
                "secret_id": name,
                "secret": {
                    "replication": {"automatic": automatic},
                    "annotations": self._annotations(description, tier),
                },
            }
        )
        logger.info(f"Created secret {name} in project {self.project_id}")

    def put(
        self,
        name: str,
        value: str,
        description: Optional[str] = None,
        key_id: Optional[str] = None,
        tier: Optional[str] = None,
        overwrite: bool = False,
    ) -> None:
        """
        Write a parameter value as a new secret version.

        Args:
            name: Parameter name
            value: Secret value
            description: Stored as the ``description`` annotation
            key_id: KMS key for new secrets; replication of an existing secret
                cannot be changed, so it is ignored when overwriting
            tier: Stored as the ``tier`` annotation
            overwrite: Update an existing secret instead of failing

        Raises:
            ParameterAlreadyExists: If overwrite is False and the secret exists
        """
        if overwrite:
            try:
                self.client.update_secret(
                    request={
                        "secret": {
                            "name": self._secret_path(name),
                            "annotations": self._annotations(description, tier),
                        },
                        "update_mask": {"paths": ["annotations"]},
                    }
                )
            except gcp_exceptions.NotFound:
                self._create_secret(name, description, key_id, tier)
        else:
            try:
                self._create_secret(name, description, key_id, tier)
            except gcp_exceptions.AlreadyExists:
                raise ParameterAlreadyExists(f"Parameter '{name}' already exists")

        self.client.add_secret_version(
            request={
                "parent": self._secret_path(name),
                "payload": {"data": value.encode("UTF-8")},
            }
        )

    def delete(self, name: str) -> None:
        try:
            self.client.delete_secret(request={"name": self._secret_path(name)})
        except gcp_exceptions.NotFound:
            raise ParameterNotFound(f"Parameter '{name}' not found")
        logger.info(f"Deleted secret {name} from project {self.project_id}")

    def list_all(self) -> Iterator[str]:
        """Yield parameter names; the client pager fetches further pages lazily."""
        for secret in self.client.list_secrets(request={"parent": self._parent()}):
            yield secret.name.rsplit("/", 1)[-1]

    def _write_labels(self, name: str, labels: Dict[str, str]) -> None:
        self.client.update_secret(
            request={
                "secret": {"name": self._secret_path(name), "labels": labels},
                "update_mask": {"paths": ["labels"]},
            }
        )

    def validate_tags(self, tags: Iterable[Tag]) -> None:
        """
        Check tags against Secret Manager label rules before anything is written.

        Keys start with a lowercase letter; keys and values hold at most 63
        lowercase letters, digits, underscores or hyphens.

        Raises:
            ValidationError: If any tag cannot be stored as a label
        """
        tags = list(tags)
        if len(tags) > MAX_LABELS:
            raise ValidationError(f"At most {MAX_LABELS} tags are supported, got {len(tags)}")

        bad_keys = sorted(t.key for t in tags if not LABEL_KEY_PATTERN.match(t.key))
        if bad_keys:
            raise ValidationError(
                f"Invalid tag keys for Secret Manager labels: {', '.join(bad_keys)} "
                f"(lowercase letters, digits, _ and -, starting with a letter, max 63 chars)"
            )
        bad_values = sorted(t.key for t in tags if not LABEL_VALUE_PATTERN.match(t.value))
        if bad_values:
            raise ValidationError(
                f"Invalid tag values for keys: {', '.join(bad_values)} "
                f"(lowercase letters, digits, _ and -, max 63 chars)"
            )

    def add_tags(self, name: str, tags: Iterable[Tag]) -> None:
        labels = dict(self._get_secret(name).labels or {})
        for tag in tags:
            labels[tag.key] = tag.value
        self._write_labels(name, labels)

    def remove_tags(self, name: str, keys: Iterable[str]) -> None:
        labels = dict(self._get_secret(name).labels or {})
        for key in keys:
            labels.pop(key, None)
        self._write_labels(name, labels)

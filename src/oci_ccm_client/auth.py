"""Authentication module for the OCI cloud controller client."""

import logging
from pathlib import Path
from typing import Any, Dict, Tuple

import oci
from oci.auth.signers import InstancePrincipalsSecurityTokenSigner, SecurityTokenSigner
from oci.signer import Signer

from .errors import AuthenticationError
from .models import AuthConfig

logger = logging.getLogger(__name__)


class OCIAuthenticator:
    """Build the SDK config dict and request signer for an :class:`AuthConfig`."""

    def __init__(self, config: AuthConfig):
        """Initialize authenticator with configuration."""
        self.config = config

    def authenticate(self) -> Tuple[Dict[str, Any], Any]:
        """
        Resolve credentials into a config dict and signer.

        Instance principals take precedence, then explicit API key fields, then
        the named profile of the OCI config file.

        Returns:
            Tuple of (config_dict, signer_object)

        Raises:
            AuthenticationError: If no usable credentials can be built
        """
        try:
            if self.config.use_instance_principals:
                return self._instance_principals()
            if self.config.is_api_key_auth():
                return self._api_key()
            return self._profile()
        except AuthenticationError:
            raise
        except Exception as e:
            logger.error(f"Authentication failed: {e}")
            raise AuthenticationError(f"Failed to authenticate with OCI: {e}") from e

    def _instance_principals(self) -> Tuple[Dict[str, Any], Any]:
        signer = InstancePrincipalsSecurityTokenSigner()
        region = self.config.region or signer.region
        logger.info("Using instance principals in region %s", region)
        return {"region": region, "tenancy": signer.tenancy_id}, signer

    def _api_key(self) -> Tuple[Dict[str, Any], Any]:
        oci_config = {
            "user": self.config.user,
            "tenancy": self.config.tenancy,
            "fingerprint": self.config.fingerprint,
            "key_file": self.config.key_file,
            "pass_phrase": self.config.pass_phrase,
            "region": self.config.region,
        }
        oci.config.validate_config(oci_config)

        key_file = Path(self.config.key_file).expanduser()
        if not key_file.exists():
            raise AuthenticationError(f"Private key file not found: {key_file}")

        signer = Signer(
            tenancy=self.config.tenancy,
            user=self.config.user,
            fingerprint=self.config.fingerprint,
            private_key_file_location=str(key_file),
            pass_phrase=self.config.pass_phrase,
        )
        logger.info("Using API key of user %s", self.config.user)
        return oci_config, signer

    def _profile(self) -> Tuple[Dict[str, Any], Any]:
        config_file = self.config.config_file or oci.config.DEFAULT_LOCATION
        oci_config = oci.config.from_file(
            file_location=config_file, profile_name=self.config.profile_name
        )
        if self.config.region:
            oci_config["region"] = self.config.region

        token_file = oci_config.get("security_token_file")
        if token_file:
            token_path = Path(token_file).expanduser()
            if not token_path.exists():
                raise AuthenticationError(
                    f"Security token file not found: {token_path}\n"
                    f"Please run: oci session authenticate --profile-name {self.config.profile_name}"
                )
            token = token_path.read_text().strip()
            private_key = oci.signer.load_private_key_from_file(
                oci_config["key_file"], pass_phrase=oci_config.get("pass_phrase")
            )
            logger.info("Using session token of profile %r", self.config.profile_name)
            return oci_config, SecurityTokenSigner(token, private_key)

        logger.info("Using API key of profile %r", self.config.profile_name)
        return oci_config, Signer.from_config(oci_config)

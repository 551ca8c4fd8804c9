"""
Configuration utilities for loading the cloud client settings from YAML.

Expected layout::

    compartment: ocid1.compartment.oc1..example
    auth:
      region: us-phoenix-1
      tenancy: ocid1.tenancy.oc1..example
      user: ocid1.user.oc1..example
      key_file: ~/.oci/oci_api_key.pem
      fingerprint: aa:bb:cc
    backoff:
      initial_interval: 2
      max_attempts: 15
"""

from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import ValidationError

from ..errors import ConfigurationError
from ..models import CloudConfig


class ConfigNotFoundError(ConfigurationError):
    """Raised when a required configuration section is missing."""


def parse_cloud_config(raw: Dict[str, Any]) -> CloudConfig:
    """
    Validate a configuration mapping.

    Args:
        raw: Mapping as read from the YAML document

    Returns:
        CloudConfig: Validated configuration

    Raises:
        ConfigNotFoundError: If the compartment is missing
        ConfigurationError: If any value fails validation
    """
    if not isinstance(raw, dict):
        raise ConfigurationError("configuration must be a mapping")

    compartment_id = raw.get("compartment") or raw.get("compartment_id")
    if not compartment_id:
        raise ConfigNotFoundError("'compartment' key not found in configuration")

    try:
        return CloudConfig(
            compartment_id=compartment_id,
            auth=raw.get("auth") or {},
            backoff=raw.get("backoff") or {},
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_cloud_config(path: Union[str, Path]) -> CloudConfig:
    """
    Read and validate the YAML configuration file at ``path``.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the YAML is malformed or invalid
    """
    try:
        with open(path, "r") as file:
            raw = yaml.safe_load(file)
    except FileNotFoundError:
        raise FileNotFoundError(f"YAML file not found at path: {path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML file {path}: {e}") from e

    return parse_cloud_config(raw or {})

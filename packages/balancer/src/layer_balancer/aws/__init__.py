from .client_config import (
    ClientConfig,
    botocore_config,
    new_client_config_with_role,
    new_default_client_config,
)
from .retry import DeterministicExponentialBackoff, is_retryable_aws_error, retrying

__all__ = [
    "ClientConfig",
    "botocore_config",
    "new_client_config_with_role",
    "new_default_client_config",
    "DeterministicExponentialBackoff",
    "is_retryable_aws_error",
    "retrying",
]

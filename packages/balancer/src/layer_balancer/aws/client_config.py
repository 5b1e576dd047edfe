from __future__ import annotations

from typing import Any, Callable

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from layer_balancer.core.errors import ConfigError

log = structlog.get_logger(__name__)

SessionFactory = Callable[..., boto3.Session]

ROLE_SESSION_NAME = "layer-balancer"


def botocore_config(*, timeout: float | None = None) -> Config:
    """
    Client config shared by every AWS client.

    botocore's own retries are switched off: calls are retried by the
    tenacity policy in `layer_balancer.aws.retry`.
    """
    kw: dict[str, Any] = {
        "retries": {"total_max_attempts": 1, "mode": "standard"},
    }
    if timeout is not None:
        kw["connect_timeout"] = timeout
        kw["read_timeout"] = timeout
    return Config(**kw)


class ClientConfig:
    def __init__(
        self, region: str, *, session_factory: SessionFactory = boto3.Session
    ) -> None:
        self.region = region
        self.session_factory = session_factory
        self._session: boto3.Session | None = None

    @property
    def session(self) -> boto3.Session:
        if self._session is None:
            raise ConfigError(f"client config for {self.region} was never loaded")
        return self._session

    def default(self) -> boto3.Session:
        try:
            self._session = self.session_factory(region_name=self.region)
        except BotoCoreError as e:
            raise ConfigError(f"unable to load AWS config for {self.region}: {e}") from e
        return self._session

    def assume_role(self, role_arn: str, *, sts_client: Any | None = None) -> boto3.Session:
        sts = sts_client or self.session.client("sts", config=botocore_config())
        try:
            out = sts.assume_role(RoleArn=role_arn, RoleSessionName=ROLE_SESSION_NAME)
        except (BotoCoreError, ClientError) as e:
            raise ConfigError(f"unable to assume role {role_arn}: {e}") from e

        creds = out["Credentials"]
        log.debug(
            "aws.assume_role",
            role=role_arn,
            region=self.region,
            expires=str(creds.get("Expiration")),
        )
        self._session = self.session_factory(
            region_name=self.region,
            aws_access_key_id=creds["AccessKeyId"],
            aws_secret_access_key=creds["SecretAccessKey"],
            aws_session_token=creds["SessionToken"],
        )
        return self._session

    def lambda_client(self, *, timeout: float | None = None) -> Any:
        return self.session.client("lambda", config=botocore_config(timeout=timeout))


def new_default_client_config(
    region: str, *, session_factory: SessionFactory = boto3.Session
) -> ClientConfig:
    cc = ClientConfig(region, session_factory=session_factory)
    cc.default()
    return cc


def new_client_config_with_role(
    region: str,
    role_arn: str,
    *,
    session_factory: SessionFactory = boto3.Session,
) -> ClientConfig:
    cc = ClientConfig(region, session_factory=session_factory)
    cc.default()
    cc.assume_role(role_arn)
    return cc

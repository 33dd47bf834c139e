"""boto3 client access for one region.

All provider calls go through an `AwsClients` instance so the controllers can
be exercised against stubs or moto without patching module globals.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from stackctl.errors import DependencyMissing

SERVICES = ("cloudformation", "secretsmanager", "ssm", "s3", "cloudfront", "sts")


class AwsClients:
    def __init__(
        self,
        region: str,
        *,
        profile: Optional[str] = None,
        session: Optional[Any] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.region = region
        self._session = session
        self._profile = profile
        self._clients: Dict[str, Any] = dict(overrides or {})

    @property
    def session(self) -> Any:
        if self._session is None:
            kwargs: Dict[str, Any] = {"region_name": self.region}
            if self._profile:
                kwargs["profile_name"] = self._profile
            self._session = boto3.Session(**kwargs)
        return self._session

    def client(self, service: str) -> Any:
        if service not in self._clients:
            self._clients[service] = self.session.client(service, region_name=self.region)
        return self._clients[service]

    @property
    def cloudformation(self) -> Any:
        return self.client("cloudformation")

    @property
    def secretsmanager(self) -> Any:
        return self.client("secretsmanager")

    @property
    def ssm(self) -> Any:
        return self.client("ssm")

    @property
    def s3(self) -> Any:
        return self.client("s3")

    @property
    def cloudfront(self) -> Any:
        return self.client("cloudfront")

    def verify_credentials(self) -> str:
        """Confirm the caller has usable AWS credentials and return the account id."""
        try:
            identity = self.client("sts").get_caller_identity()
        except NoCredentialsError as exc:
            raise DependencyMissing("AWS credentials are not configured. Run 'aws configure' first.") from exc
        except (BotoCoreError, ClientError) as exc:
            raise DependencyMissing(f"Unable to verify AWS credentials: {exc}") from exc
        return str(identity.get("Account", ""))

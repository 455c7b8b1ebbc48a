from __future__ import annotations

from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as PydanticValidationError

from riskplan.exceptions import S3Error, WorkspaceIntegrityError
from riskplan.model.schema import SerializedWorkspace

DEFAULT_KEY = "workspace.json"
_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


class S3WorkspaceStore:
    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: Optional[str] = None,
        key: str = DEFAULT_KEY,
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.key = key
        if client is None:
            session = boto3.session.Session(region_name=region) if region else boto3.session.Session()
            client = session.client("s3")
        self.client = client

    def _key(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self._key(self.key)}"

    def save(self, serialized: SerializedWorkspace) -> str:
        body = serialized.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=self._key(self.key),
                Body=body,
                ContentType="application/json",
            )
        except (BotoCoreError, ClientError) as exc:
            raise S3Error(f"Cannot upload workspace to {self.uri}: {exc}", {"uri": self.uri}) from exc
        return self.uri

    def load(self) -> Optional[SerializedWorkspace]:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._key(self.key))
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return None
            raise S3Error(f"Cannot download workspace from {self.uri}: {exc}", {"uri": self.uri}) from exc
        except BotoCoreError as exc:
            raise S3Error(f"Cannot download workspace from {self.uri}: {exc}", {"uri": self.uri}) from exc
        data = response["Body"].read()
        try:
            return SerializedWorkspace.model_validate_json(data)
        except PydanticValidationError as exc:
            raise WorkspaceIntegrityError(
                f"Malformed workspace object {self.uri}: {exc.error_count()} validation error(s)",
                {"uri": self.uri, "errors": exc.errors(include_url=False)},
            ) from exc


__all__ = ["S3WorkspaceStore"]

from __future__ import annotations

import os

import httpx
import pytest

from src.adapters.aws import AwsRuntimeConfig


def _localstack_s3_ready(endpoint_url: str) -> bool:
    url = endpoint_url.rstrip("/") + "/_localstack/health"
    try:
        resp = httpx.get(url, timeout=1.5)
        resp.raise_for_status()
        services = resp.json().get("services", {})
    except (httpx.HTTPError, ValueError):
        return False
    return services.get("s3") in (None, "available", "running")


@pytest.fixture(scope="session", autouse=True)
def localstack_env() -> None:
    """Point the S3 client at LocalStack unless the environment says otherwise."""

    os.environ.setdefault("USE_LOCALSTACK", "true")
    os.environ.setdefault("ENDPOINT_URL", "http://localhost:4566")
    os.environ.setdefault("AWS_REGION", "eu-central-1")

    # boto3 refuses to sign requests without credentials, even for LocalStack.
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")


@pytest.fixture(scope="session")
def require_localstack(localstack_env: None) -> str:
    endpoint_url = AwsRuntimeConfig.from_env().resolved_endpoint_url()
    assert endpoint_url is not None
    if not _localstack_s3_ready(endpoint_url):
        msg = f"LocalStack S3 not reachable at {endpoint_url}"
        # CI starts LocalStack, so a miss there is a failure.
        if os.getenv("CI") or os.getenv("REQUIRE_LOCALSTACK"):
            pytest.fail(msg, pytrace=False)
        pytest.skip(msg)
    return endpoint_url

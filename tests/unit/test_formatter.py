import json

import pytest

from stackctl.errors import UsageError
from stackctl.formatter import (
    BACKEND_SECRETS,
    FRONTEND_SECRETS,
    KEY_WIDTH,
    VALUE_WIDTH,
    render,
)
from stackctl.models import MergedOutputTable


@pytest.fixture
def table() -> MergedOutputTable:
    t = MergedOutputTable()
    t.set("GitHubActionsAccessKeyId", "AKIA123", "CI access key")
    t.set("StorageStack_StagingBucketName", "site-staging")
    t.set("DATABASE_URL", "mysql://u:<PASSWORD>@h:3306/d", "Generated database connection URL")
    t.set("Unrelated", "x")
    return t


def test_render_env_lines_in_order(table: MergedOutputTable) -> None:
    assert render(table, "env").splitlines() == [
        "GitHubActionsAccessKeyId=AKIA123",
        "StorageStack_StagingBucketName=site-staging",
        "DATABASE_URL=mysql://u:<PASSWORD>@h:3306/d",
        "Unrelated=x",
    ]


def test_render_defaults_to_env(table: MergedOutputTable) -> None:
    assert render(table) == render(table, "env")


def test_render_json_object_keeps_order(table: MergedOutputTable) -> None:
    rendered = render(table, "json")

    assert list(json.loads(rendered)) == [k for k, _ in table.items()]
    assert rendered.startswith("{\n  ")


def test_render_table_columns(table: MergedOutputTable) -> None:
    """
    Given: entries with and without descriptions
    When: rendering as a table
    Then: key and value columns are padded and blank descriptions leave no trailing spaces
    """
    lines = render(table, "table").splitlines()

    assert lines[0].startswith("KEY".ljust(KEY_WIDTH) + " " + "VALUE".ljust(VALUE_WIDTH))
    assert lines[0].endswith("DESCRIPTION")
    assert lines[2] == f"{'GitHubActionsAccessKeyId':<{KEY_WIDTH}} {'AKIA123':<{VALUE_WIDTH}} CI access key"
    assert lines[-1] == f"{'Unrelated':<{KEY_WIDTH}} x"


def test_render_github_secrets_groups(table: MergedOutputTable) -> None:
    """
    Given: keys relevant to frontend, backend, both and neither
    When: rendering github-secrets
    Then: the shared key appears in both groups and the unrelated key in none
    """
    rendered = render(table, "github-secrets")
    frontend, backend = rendered.split("\n\n")

    assert frontend.splitlines()[:2] == ["Frontend Repository Secrets:", "=" * 28]
    assert "GitHubActionsAccessKeyId=AKIA123" in frontend
    assert "StorageStack_StagingBucketName=site-staging" in frontend
    assert "DATABASE_URL" not in frontend

    assert backend.splitlines()[0] == "Backend Repository Secrets:"
    assert "GitHubActionsAccessKeyId=AKIA123" in backend
    assert "DATABASE_URL=mysql://u:<PASSWORD>@h:3306/d" in backend
    assert "Unrelated" not in rendered


@pytest.mark.parametrize(
    "key,frontend,backend",
    [
        ("GitHubActionsSecretAccessKey", True, True),
        ("STAGING_BUCKET", True, False),
        ("CloudFrontStack_ProductionDistributionId", True, False),
        ("EcsStack_EcsClusterName", False, True),
        ("SHADOW_DATABASE_URL", False, True),
        ("STACK_NAME", False, True),
        ("ApiGatewayId", False, False),
    ],
)
def test_secret_group_allow_lists(key: str, frontend: bool, backend: bool) -> None:
    assert FRONTEND_SECRETS.matches(key) is frontend
    assert BACKEND_SECRETS.matches(key) is backend


def test_render_unknown_mode(table: MergedOutputTable) -> None:
    with pytest.raises(UsageError):
        render(table, "yaml")


def test_render_empty_table() -> None:
    assert render(MergedOutputTable(), "env") == ""
    assert render(MergedOutputTable(), "json") == "{}"

"""Rendering of the merged output table.

`render` is a pure function of the table and the mode. The github-secrets
grouping is driven by declarative allow-lists of key prefixes, so each group
can be checked on its own.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple

from stackctl.errors import UsageError
from stackctl.models import MergedOutputTable

FORMATS = ("env", "json", "table", "github-secrets")

KEY_WIDTH = 30
VALUE_WIDTH = 50


@dataclass(frozen=True)
class SecretGroup:
    title: str
    prefixes: Tuple[str, ...]

    def matches(self, key: str) -> bool:
        return key.startswith(self.prefixes)

    def select(self, rows: Sequence[Tuple[str, str]]) -> List[Tuple[str, str]]:
        return [(k, v) for k, v in rows if self.matches(k)]


FRONTEND_SECRETS = SecretGroup(
    title="Frontend Repository Secrets",
    prefixes=(
        "GitHubActionsAccessKeyId",
        "GitHubActionsSecretAccessKey",
        "STAGING_",
        "PRODUCTION_",
        "STORYBOOK_",
        "CloudFrontStack_StagingDistributionId",
        "CloudFrontStack_ProductionDistributionId",
        "CloudFrontStack_StorybookDistributionId",
        "StorageStack_StagingBucketName",
        "StorageStack_ProductionBucketName",
        "StorageStack_StorybookBucketName",
        "CloudFrontStack_ContentTypeFunctionArn",
    ),
)

BACKEND_SECRETS = SecretGroup(
    title="Backend Repository Secrets",
    prefixes=(
        "GitHubActionsAccessKeyId",
        "GitHubActionsSecretAccessKey",
        "ECR_REPOSITORY_NAME",
        "EcsStack_EcsClusterName",
        "EcsStack_EcsServiceName",
        "DATABASE_URL",
        "SHADOW_DATABASE_URL",
        "DatabaseStack_DatabaseUsername",
        "DatabaseStack_DatabaseEndpoint",
        "DatabaseStack_DatabasePort",
        "DatabaseStack_DatabaseName",
        "ApiEndpoint",
        "GraphqlEndpoint",
        "AdminEndpoint",
        "AWS_REGION",
        "STACK_NAME",
    ),
)

SECRET_GROUPS: Tuple[SecretGroup, ...] = (FRONTEND_SECRETS, BACKEND_SECRETS)


def render_env(table: MergedOutputTable) -> str:
    return "\n".join(f"{key}={value}" for key, value in table.items())


def render_json(table: MergedOutputTable) -> str:
    return json.dumps({key: str(value) for key, value in table.items()}, indent=2, ensure_ascii=False)


def render_table(table: MergedOutputTable) -> str:
    lines = [
        f"{'KEY':<{KEY_WIDTH}} {'VALUE':<{VALUE_WIDTH}} DESCRIPTION",
        f"{'---':<{KEY_WIDTH}} {'-----':<{VALUE_WIDTH}} -----------",
    ]
    for key, value in table.items():
        lines.append(f"{key:<{KEY_WIDTH}} {value:<{VALUE_WIDTH}} {table.description(key)}".rstrip())
    return "\n".join(lines)


def render_github_secrets(table: MergedOutputTable, groups: Sequence[SecretGroup] = SECRET_GROUPS) -> str:
    rows = table.items()
    blocks: List[str] = []
    for group in groups:
        lines = [f"{group.title}:", "=" * (len(group.title) + 1)]
        lines.extend(f"{key}={value}" for key, value in group.select(rows))
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


_RENDERERS: Dict[str, Callable[[MergedOutputTable], str]] = {
    "env": render_env,
    "json": render_json,
    "table": render_table,
    "github-secrets": render_github_secrets,
}


def render(table: MergedOutputTable, mode: str = "env") -> str:
    try:
        renderer = _RENDERERS[mode]
    except KeyError:
        raise UsageError(f"Invalid output format: {mode}. Must be one of: {', '.join(FORMATS)}") from None
    return renderer(table)

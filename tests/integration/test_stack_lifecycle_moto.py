"""End-to-end controller flows against moto's in-memory AWS."""

import json
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

from stackctl.bootstrap import ensure_bootstrap
from stackctl.clients import AwsClients
from stackctl.derived import add_derived_values
from stackctl.formatter import render
from stackctl.lifecycle import CREATE, UPDATE, deploy_stack
from stackctl.models import Outcome
from stackctl.outputs import collect_outputs
from stackctl.resolver import resolve_environment
from stackctl.teardown import delete_stack
from tests.fixtures.data_builders import write_parameter_file, write_template

REGION = "us-east-1"

TEMPLATE = """\
AWSTemplateFormatVersion: "2010-09-09"
Parameters:
  Environment:
    Type: String
  ProjectName:
    Type: String
  StagingBucket:
    Type: String
    Default: ""
Resources:
  ArtifactBucket:
    Type: AWS::S3::Bucket
Outputs:
  StagingBucketName:
    Value: !Ref StagingBucket
  ArtifactBucketName:
    Value: !Ref ArtifactBucket
  EnvironmentName:
    Description: Deployed environment
    Value: !Ref Environment
  ProjectNameOut:
    Value: !Ref ProjectName
"""

DATABASE_TEMPLATE = """\
AWSTemplateFormatVersion: "2010-09-09"
Resources:
  Marker:
    Type: AWS::S3::Bucket
Outputs:
  DatabaseEndpoint:
    Value: db.internal
  DatabasePort:
    Value: "3306"
  DatabaseName:
    Value: app
  DatabaseUsername:
    Value: dbadmin
"""


def _project(tmp_path: Path, environment: str, staging_bucket: str = "") -> Path:
    write_template(tmp_path, TEMPLATE)
    write_parameter_file(
        tmp_path,
        environment,
        [
            {"ParameterKey": "Environment", "ParameterValue": environment},
            {"ParameterKey": "ProjectName", "ParameterValue": f"my-app-{environment}"},
            {"ParameterKey": "StagingBucket", "ParameterValue": staging_bucket},
        ],
    )
    return tmp_path


@mock_aws
def test_deploy_creates_then_updates_stack(tmp_path: Path, fast_settings) -> None:
    """
    Given: no stack in the account
    When: deploying twice with a changed parameter file in between
    Then: the first run creates the stack and the second updates it
    """
    env = resolve_environment("dev", base_dir=_project(tmp_path, "dev"))
    clients = AwsClients(REGION)

    first = deploy_stack(env, clients, settings=fast_settings, sleep=lambda _s: None)

    write_parameter_file(
        tmp_path,
        "dev",
        [
            {"ParameterKey": "Environment", "ParameterValue": "dev"},
            {"ParameterKey": "ProjectName", "ParameterValue": "my-app-dev"},
            {"ParameterKey": "StagingBucket", "ParameterValue": "changed"},
        ],
    )
    second = deploy_stack(env, clients, settings=fast_settings, sleep=lambda _s: None)

    assert (first.action, first.outcome) == (CREATE, Outcome.SUCCESS)
    assert (second.action, second.outcome) == (UPDATE, Outcome.SUCCESS)
    stack = boto3.client("cloudformation", region_name=REGION).describe_stacks(StackName="my-app-dev")["Stacks"][0]
    assert {"Key": "ManagedBy", "Value": "stackctl"} in stack["Tags"]


@mock_aws
def test_collect_outputs_with_nested_database_stack(tmp_path: Path, fast_settings) -> None:
    """
    Given: a deployed root stack and a sibling stack named like a nested DatabaseStack
    When: collecting and deriving outputs
    Then: nested keys are prefixed and a DATABASE_URL is generated from them
    """
    env = resolve_environment("dev", base_dir=_project(tmp_path, "dev"))
    clients = AwsClients(REGION)
    deploy_stack(env, clients, settings=fast_settings, sleep=lambda _s: None)
    boto3.client("cloudformation", region_name=REGION).create_stack(
        StackName="my-app-dev-DatabaseStack-1XYZ9", TemplateBody=DATABASE_TEMPLATE
    )

    table = add_derived_values(collect_outputs(clients, "my-app-dev"), "my-app-dev", REGION)

    assert table.get("EnvironmentName") == "dev"
    assert table.description("EnvironmentName") == "Deployed environment"
    assert table.get("ProjectNameOut") == "my-app-dev"
    assert table.get("DatabaseStack_DatabaseEndpoint") == "db.internal"
    assert table.get("DATABASE_URL") == "mysql://dbadmin:<PASSWORD>@db.internal:3306/app"
    assert table.get("SHADOW_DATABASE_URL") == "mysql://dbadmin:<PASSWORD>@db.internal:3306/app_shadow"
    assert json.loads(render(table, "json"))["ECR_REPOSITORY_NAME"] == "my-app-backend"


@mock_aws
def test_bootstrap_is_idempotent_against_real_stores(tmp_path: Path) -> None:
    env = resolve_environment("staging", base_dir=_project(tmp_path, "staging"))
    clients = AwsClients(REGION)

    first = ensure_bootstrap(env, clients)
    secret_before = clients.secretsmanager.get_secret_value(SecretId="my-app-staging-db-credentials")["SecretString"]
    second = ensure_bootstrap(env, clients)
    secret_after = clients.secretsmanager.get_secret_value(SecretId="my-app-staging-db-credentials")["SecretString"]

    assert first is not None and first.secret_created and first.parameter_created
    assert second is not None and not (second.secret_created or second.parameter_created)
    assert secret_before == secret_after
    assert json.loads(secret_after)["username"] == "dbadmin"
    value = clients.ssm.get_parameter(Name="/app/my-app-staging/container-image")["Parameter"]["Value"]
    assert value == "public.ecr.aws/nginx/nginx:latest"


@mock_aws
def test_teardown_empties_versioned_bucket_and_removes_stack(tmp_path: Path, fast_settings) -> None:
    """
    Given: a prod stack whose StagingBucketName output points at a versioned bucket with objects,
           plus bootstrapped secret and parameter
    When: tearing down with the correct confirmation
    Then: every object version is removed, bootstrap entries are gone and the stack no longer exists
    """
    s3 = boto3.client("s3", region_name=REGION)
    s3.create_bucket(Bucket="site-staging-bucket")
    s3.put_bucket_versioning(Bucket="site-staging-bucket", VersioningConfiguration={"Status": "Enabled"})
    s3.put_object(Bucket="site-staging-bucket", Key="index.html", Body=b"v1")
    s3.put_object(Bucket="site-staging-bucket", Key="index.html", Body=b"v2")
    s3.delete_object(Bucket="site-staging-bucket", Key="index.html")

    env = resolve_environment("prod", base_dir=_project(tmp_path, "prod", staging_bucket="site-staging-bucket"))
    clients = AwsClients(REGION)
    ensure_bootstrap(env, clients)
    deploy_stack(env, clients, settings=fast_settings, sleep=lambda _s: None)

    result = delete_stack(env, clients, lambda _text: "my-app-prod", settings=fast_settings, sleep=lambda _s: None)

    assert result.outcome is Outcome.SUCCESS
    assert result.emptied_buckets == ["site-staging-bucket"]
    versions = s3.list_object_versions(Bucket="site-staging-bucket")
    assert versions.get("Versions", []) == [] and versions.get("DeleteMarkers", []) == []
    with pytest.raises(clients.secretsmanager.exceptions.ResourceNotFoundException):
        clients.secretsmanager.describe_secret(SecretId="my-app-prod-db-credentials")
    with pytest.raises(clients.ssm.exceptions.ParameterNotFound):
        clients.ssm.get_parameter(Name="/app/my-app-prod/container-image")
    summaries = boto3.client("cloudformation", region_name=REGION).list_stacks(StackStatusFilter=["CREATE_COMPLETE"])
    assert all(s["StackName"] != "my-app-prod" for s in summaries["StackSummaries"])

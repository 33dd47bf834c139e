import pytest

from stackctl.errors import PreconditionFailed, WaitTimeout
from stackctl.invalidation import distribution_output_key, invalidate_cache
from tests.fixtures.clients import CloudFormationStub, CloudFrontStub, make_clients
from tests.fixtures.data_builders import build_stack


def test_dev_and_staging_share_distribution_key_prod_differs() -> None:
    assert distribution_output_key("dev") == distribution_output_key("staging") == "StagingDistributionId"
    assert distribution_output_key("prod") == "ProductionDistributionId"


def test_invalidate_cache_waits_for_completion(make_env, fast_settings, no_sleep) -> None:
    """
    Given: a staging stack exposing StagingDistributionId
    When: invalidating without explicit paths
    Then: /* is invalidated and polling continues until Completed
    """
    cfn = CloudFormationStub({"my-app-staging": build_stack(("StagingDistributionId", "E2ABC"))})
    cf = CloudFrontStub(["InProgress", "Completed"])

    request = invalidate_cache(
        make_env("staging"), make_clients(cloudformation=cfn, cloudfront=cf), settings=fast_settings, sleep=no_sleep
    )

    assert request.completed
    assert request.invalidation_id == "I2J0I21PCUYOIK"
    batch = cf.created[0]["InvalidationBatch"]
    assert cf.created[0]["DistributionId"] == "E2ABC"
    assert batch["Paths"] == {"Quantity": 1, "Items": ["/*"]}
    assert batch["CallerReference"].startswith("stackctl-")
    assert cf.polled == 2


def test_invalidate_cache_explicit_paths_for_prod(make_env, fast_settings, no_sleep) -> None:
    cfn = CloudFormationStub(
        {"my-app-prod": build_stack(("StagingDistributionId", "E-STG"), ("ProductionDistributionId", "E-PRD"))}
    )
    cf = CloudFrontStub()

    invalidate_cache(
        make_env("prod"),
        make_clients(cloudformation=cfn, cloudfront=cf),
        ["/index.html", "/assets/*"],
        settings=fast_settings,
        sleep=no_sleep,
    )

    assert cf.created[0]["DistributionId"] == "E-PRD"
    assert cf.created[0]["InvalidationBatch"]["Paths"]["Quantity"] == 2


def test_invalidate_cache_already_completed_skips_polling(make_env, fast_settings, no_sleep) -> None:
    cfn = CloudFormationStub({"my-app-dev": build_stack(("StagingDistributionId", "E1"))})
    cf = CloudFrontStub(initial_status="Completed")

    invalidate_cache(
        make_env("dev"), make_clients(cloudformation=cfn, cloudfront=cf), settings=fast_settings, sleep=no_sleep
    )

    assert cf.polled == 0


def test_missing_distribution_output_fails_without_invalidation(make_env, fast_settings, no_sleep) -> None:
    """
    Given: a prod stack without ProductionDistributionId
    When: invalidating
    Then: PreconditionFailed is raised and no invalidation is created
    """
    cfn = CloudFormationStub({"my-app-prod": build_stack(("StagingDistributionId", "E-STG"))})
    cf = CloudFrontStub()

    with pytest.raises(PreconditionFailed):
        invalidate_cache(
            make_env("prod"), make_clients(cloudformation=cfn, cloudfront=cf), settings=fast_settings, sleep=no_sleep
        )
    assert cf.created == []


def test_missing_stack_fails(make_env, fast_settings, no_sleep) -> None:
    with pytest.raises(PreconditionFailed):
        invalidate_cache(make_env("dev"), make_clients(), settings=fast_settings, sleep=no_sleep)


def test_invalidation_never_completing_times_out(make_env, fast_settings, no_sleep) -> None:
    cfn = CloudFormationStub({"my-app-dev": build_stack(("StagingDistributionId", "E1"))})
    cf = CloudFrontStub(["InProgress"])

    with pytest.raises(WaitTimeout):
        invalidate_cache(
            make_env("dev"), make_clients(cloudformation=cfn, cloudfront=cf), settings=fast_settings, sleep=no_sleep
        )
    assert cf.polled == fast_settings.wait_max_attempts

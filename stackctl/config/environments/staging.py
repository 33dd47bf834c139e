"""Staging environment configuration."""

staging_config = {
    "default_region": "us-east-1",
    "project_name_prefix": "my-app",
    "parameter_file": "parameters/environment/staging.json",
    "template_dir": "templates",
    "template_file": "main.yaml",
    "bootstrap_enabled": True,
    "db_username": "dbadmin",
    "container_image": "public.ecr.aws/nginx/nginx:latest",
    "distribution_output_key": "StagingDistributionId",
    "storage_output_keys": ["StagingBucketName", "ProductionBucketName", "StorybookBucketName"],
    "storage_roles": ["staging", "production", "storybook"],
    "stack_wait_delay_seconds": 30,
    "stack_wait_max_attempts": 120,
    "invalidation_wait_delay_seconds": 20,
    "invalidation_wait_max_attempts": 30,
    "capabilities": ["CAPABILITY_NAMED_IAM"],
    "tags": {
        "Environment": "staging",
        "ManagedBy": "stackctl",
    },
}

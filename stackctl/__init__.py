"""stackctl: lifecycle and output reconciliation for per-environment CloudFormation stacks."""

__version__ = "0.1.0"

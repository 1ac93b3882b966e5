"""Agent name contracts.

The set of invokable agents is closed: the wire envelope carries one of these
names and anything else is rejected before dispatch.
"""

from __future__ import annotations

from enum import Enum
from typing import Final


class AgentName(str, Enum):
    cloudformation = "cloudformationAgent"
    codepipeline = "codepipelineAgent"
    cloudwatch_logs = "cloudwatchLogsAgent"
    lambda_ = "lambdaAgent"
    dynamodb = "dynamodbAgent"
    s3 = "s3Agent"

    # Unified generalist carrying every specialist capability.
    aws = "awsAgent"

    # Coordinator that fans out to the specialists and aggregates.
    aws_network = "awsAgentNetwork"

    def __str__(self) -> str:
        return self.value


DEFAULT_AGENT: Final[AgentName] = AgentName.aws

SPECIALIST_AGENTS: Final[tuple[AgentName, ...]] = (
    AgentName.cloudformation,
    AgentName.codepipeline,
    AgentName.cloudwatch_logs,
    AgentName.lambda_,
    AgentName.dynamodb,
    AgentName.s3,
)

AGENT_DESCRIPTIONS: Final[dict[AgentName, str]] = {
    AgentName.aws: (
        "Combines the capabilities of all specialized AWS agents. Useful for broad queries spanning "
        "multiple services or when the specific service is unknown. Faster than the network agent "
        "but less flexible."
    ),
    AgentName.aws_network: (
        "Coordinates the specialized AWS agents for broad queries spanning multiple services. "
        "More flexible and resilient than the unified agent but slower."
    ),
    AgentName.cloudformation: (
        "Finds and analyzes CloudFormation stacks, monitors deployments and troubleshoots failures."
    ),
    AgentName.codepipeline: (
        "Read-only access to CI/CD pipelines, their structure, status and execution history."
    ),
    AgentName.cloudwatch_logs: (
        "Works with CloudWatch logs: finding log groups and retrieving log events."
    ),
    AgentName.lambda_: "Finds Lambda functions and reports their configuration.",
    AgentName.dynamodb: (
        "Works with DynamoDB: finding tables, counting items and retrieving specific items."
    ),
    AgentName.s3: "Works with S3: finding buckets, counting objects and retrieving specific objects.",
}

AGENT_ALIASES: Final[dict[str, AgentName]] = {
    "cf": AgentName.cloudformation,
    "cfn": AgentName.cloudformation,
    "cloudformation": AgentName.cloudformation,
    "cp": AgentName.codepipeline,
    "codepipeline": AgentName.codepipeline,
    "cw": AgentName.cloudwatch_logs,
    "cwl": AgentName.cloudwatch_logs,
    "logs": AgentName.cloudwatch_logs,
    "cloudwatch": AgentName.cloudwatch_logs,
    "lambda": AgentName.lambda_,
    "dynamodb": AgentName.dynamodb,
    "ddb": AgentName.dynamodb,
    "s3": AgentName.s3,
    "aws": AgentName.aws,
    "net": AgentName.aws_network,
    "network": AgentName.aws_network,
}


def parse_agent_name(value: str | AgentName) -> AgentName:
    """Return the enum member for an exact wire name.

    Raises:
        ValueError: if the name is not part of the closed set.
    """

    if isinstance(value, AgentName):
        return value
    return AgentName(value)


def resolve_agent_alias(text: str) -> AgentName | None:
    """Resolve a user-typed agent name or short alias (case-insensitive)."""

    wanted = (text or "").strip()
    if not wanted:
        return None

    for name in AgentName:
        if name.value.lower() == wanted.lower():
            return name
    return AGENT_ALIASES.get(wanted.lower())

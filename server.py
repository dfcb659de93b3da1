"""
Log Masking Sentinel - MCP Server for inspecting log masking

A local MCP (Model Context Protocol) server that exposes the masking rules
used by this process's logging pipeline, read-only, and lets an AI agent
preview how log lines (including real CloudWatch Logs events) are masked.

Tools:
    - get_masking_config: Current masking character and patterns
    - get_masking_pattern: Look up one pattern by its configured name
    - preview_masking: Show how a message would be masked
    - preview_masked_log_events: Fetch recent CloudWatch events, masked

Safety Constraints:
    - No tool can change the masking rules
    - Maximum 60 minutes lookback to prevent high AWS costs
    - Results limited to top 20 entries
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any

import boto3
from botocore.exceptions import ClientError, NoCredentialsError
from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from masking import MaskingConfigurator, MaskingSettings, RedactionEngine, configure_logging

# Load environment variables from .env file
load_dotenv()

# Build the masking engine and route this process's logs through it
settings = MaskingSettings.from_env()
engine = RedactionEngine()
configurator = MaskingConfigurator(settings)
configurator.apply(engine.store)
configure_logging(engine, level=settings.log_level)

logger = logging.getLogger(__name__)

# Initialize MCP server
mcp = FastMCP(
    "log-masking-sentinel",
    instructions="MCP Server for inspecting and previewing log masking rules"
)

# Safety constants
MAX_LOOKBACK_MINUTES = 60
MAX_RESULTS = 20
MAX_MESSAGE_LENGTH = 500


def get_cloudwatch_client():
    """Create and return a CloudWatch Logs client using environment credentials."""
    return boto3.client(
        "logs",
        aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        region_name=os.getenv("AWS_REGION", "us-east-1")
    )


@mcp.tool()
def get_masking_config() -> dict[str, Any]:
    """
    Return the masking configuration currently used by the logging pipeline.

    Returns:
        A dictionary containing:
        - status: "success"
        - masking_char: The character values are overwritten with
        - patterns: Named patterns (name -> regex)
        - unnamed_patterns: Patterns added without a name
        - pattern_count: Total number of active patterns
    """
    store = engine.store
    named = store.get_pattern_map()
    unnamed = [rule.pattern for rule in store.snapshot().rules if rule.name is None]

    logger.info(f"Returning masking configuration with {store.pattern_count()} patterns")

    return {
        "status": "success",
        "masking_char": store.get_masking_char(),
        "patterns": named,
        "unnamed_patterns": unnamed,
        "pattern_count": store.pattern_count()
    }


@mcp.tool()
def get_masking_pattern(pattern_name: str) -> dict[str, Any]:
    """
    Look up a single masking pattern by its configured name.

    Args:
        pattern_name: The rule name. Example: "token" or "credit-card"

    Returns:
        A dictionary containing:
        - status: "success" or "error"
        - name: The requested pattern name
        - pattern: The regex (on success)
        - message: Why the lookup failed (on error)
    """
    pattern = engine.store.get_pattern_by_name(pattern_name)
    if pattern is None:
        logger.warning(f"Pattern '{pattern_name}' not found")
        return {
            "status": "error",
            "name": pattern_name,
            "message": f"Pattern '{pattern_name}' not found"
        }

    return {
        "status": "success",
        "name": pattern_name,
        "pattern": pattern
    }


@mcp.tool()
def preview_masking(message: str) -> dict[str, Any]:
    """
    Show how a log message would be masked by the current rules.

    The message is not logged and the rules are not changed.

    Args:
        message: Text that may contain sensitive values.
                 Example: "User login with token=abc123 and password=secret456"

    Returns:
        A dictionary containing:
        - status: "success"
        - masked_message: The message after masking
        - was_masked: True if any character was masked
        - pattern_count: Number of rules applied
    """
    masked = engine.redact(message)
    return {
        "status": "success",
        "masked_message": masked,
        "was_masked": masked != message,
        "pattern_count": engine.store.pattern_count()
    }


@mcp.tool()
def preview_masked_log_events(log_group_name: str, minutes: int = 15) -> dict[str, Any]:
    """
    Fetch recent events from a CloudWatch Log Group and mask them.

    Useful for checking whether logs that were written without masking
    would have leaked values under the current rules.

    Args:
        log_group_name: The name of the CloudWatch Log Group to read.
                        Example: "/aws/lambda/my-function" or "/ecs/my-service"
        minutes: How many minutes back to read (1-60). Defaults to 15.

    Returns:
        A dictionary containing:
        - status: "success" or "error"
        - log_group: The queried log group name
        - time_range: Human-readable time range searched
        - event_count: Number of events returned
        - masked_count: How many of them had something masked
        - events: List of events (max 20), each with:
            - timestamp: When the event was written (ms since epoch)
            - message: The masked message (truncated to 500 chars)
            - masked: True if anything in the message was masked
    """
    # Enforce safety limit
    if minutes < 1:
        minutes = 1
    if minutes > MAX_LOOKBACK_MINUTES:
        minutes = MAX_LOOKBACK_MINUTES

    try:
        client = get_cloudwatch_client()

        end_time = datetime.now(timezone.utc)
        start_time = end_time - timedelta(minutes=minutes)

        response = client.filter_log_events(
            logGroupName=log_group_name,
            startTime=int(start_time.timestamp() * 1000),
            endTime=int(end_time.timestamp() * 1000),
            limit=MAX_RESULTS
        )
        raw_events = response.get("events", [])[:MAX_RESULTS]

        # Mask first, then truncate, so a cut never exposes part of a value
        originals = [event.get("message", "") for event in raw_events]
        masked = engine.redact_batch(originals)

        events = []
        for event, original, message in zip(raw_events, originals, masked):
            events.append({
                "timestamp": event.get("timestamp"),
                "message": message[:MAX_MESSAGE_LENGTH] + "..." if len(message) > MAX_MESSAGE_LENGTH else message,
                "masked": message != original
            })

        return {
            "status": "success",
            "log_group": log_group_name,
            "time_range": f"Last {minutes} minutes (from {start_time.isoformat()} to {end_time.isoformat()})",
            "event_count": len(events),
            "masked_count": sum(1 for e in events if e["masked"]),
            "events": events
        }

    except NoCredentialsError:
        return {
            "status": "error",
            "log_group": log_group_name,
            "message": "AWS credentials not found. Please set AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, and AWS_REGION environment variables."
        }
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        error_message = e.response.get("Error", {}).get("Message", str(e))
        return {
            "status": "error",
            "log_group": log_group_name,
            "message": f"AWS Error ({error_code}): {error_message}"
        }
    except Exception as e:
        return {
            "status": "error",
            "log_group": log_group_name,
            "message": f"Unexpected error: {str(e)}"
        }


if __name__ == "__main__":
    # Run the MCP server using stdio transport
    mcp.run()

"""Inbound network security group rules for the demo stack.

az vm create makes an NSG named <vm-name>NSG that already allows SSH (22).
This module opens the ports the Compose stack listens on, one rule per port.

Rules are created one at a time and are independent: a failure on one rule
aborts the run but leaves earlier rules in place.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fairdeploy.exceptions import ValidationError

if TYPE_CHECKING:
    from fairdeploy.azure_cli import AzureClient

logger = logging.getLogger(__name__)

# Azure accepts NSG rule priorities in this range
MIN_PRIORITY = 100
MAX_PRIORITY = 4096


@dataclass(frozen=True)
class InboundRule:
    """A single inbound allow rule."""

    name: str
    port: int
    priority: int
    description: str = ""
    protocol: str = "Tcp"
    access: str = "Allow"


DEFAULT_INBOUND_RULES: tuple[InboundRule, ...] = (
    InboundRule("AllowHTTP", 80, 100, "Fairscape frontend"),
    InboundRule("AllowFairscapeAPI", 8080, 110, "Fairscape backend API"),
    InboundRule("AllowMinioAPI", 9000, 120, "MinIO API"),
    InboundRule("AllowMinioConsole", 9001, 130, "MinIO console"),
    InboundRule("AllowMongoExpress", 8081, 150, "Mongo Express"),
)


def validate_rule_table(rules: Sequence[InboundRule]) -> None:
    """Check a rule table before any rule is sent to Azure.

    Priorities must be within Azure's range and strictly increasing, which
    also makes them distinct. Names and ports must be unique.

    Raises:
        ValidationError: If the table is empty or inconsistent
    """
    if not rules:
        raise ValidationError("At least one inbound rule is required")

    previous: InboundRule | None = None
    for rule in rules:
        if not 1 <= rule.port <= 65535:
            raise ValidationError(f"Rule {rule.name}: invalid port {rule.port}")
        if not MIN_PRIORITY <= rule.priority <= MAX_PRIORITY:
            raise ValidationError(
                f"Rule {rule.name}: priority {rule.priority} outside "
                f"{MIN_PRIORITY}-{MAX_PRIORITY}"
            )
        if previous is not None and rule.priority <= previous.priority:
            raise ValidationError(
                f"Rule priorities must be strictly increasing: "
                f"{previous.name}={previous.priority}, {rule.name}={rule.priority}"
            )
        previous = rule

    names = [r.name for r in rules]
    if len(set(names)) != len(names):
        raise ValidationError("Rule names must be unique")
    ports = [r.port for r in rules]
    if len(set(ports)) != len(ports):
        raise ValidationError("Rule ports must be unique")


def configure_inbound_rules(
    client: AzureClient,
    resource_group: str,
    nsg_name: str,
    rules: Sequence[InboundRule] = DEFAULT_INBOUND_RULES,
    progress_callback: Callable[[str], None] | None = None,
) -> list[InboundRule]:
    """Create one NSG rule per entry, in order.

    Args:
        client: Azure client used for the rule-create calls
        resource_group: Resource group holding the NSG
        nsg_name: Network security group name
        rules: Rules to create
        progress_callback: Optional callback for progress updates

    Returns:
        The rules that were created (all of them, since any failure raises)

    Raises:
        ValidationError: If the rule table is inconsistent
        ProviderCallError: If a rule-create call fails; earlier rules stay
    """
    validate_rule_table(rules)

    created: list[InboundRule] = []
    for rule in rules:
        msg = f"Opening port {rule.port} ({rule.name}, priority {rule.priority})"
        if progress_callback:
            progress_callback(msg)
        logger.debug(msg)

        client.create_nsg_rule(resource_group, nsg_name, rule)
        created.append(rule)

    return created


__all__ = [
    "DEFAULT_INBOUND_RULES",
    "InboundRule",
    "configure_inbound_rules",
    "validate_rule_table",
]

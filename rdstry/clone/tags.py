"""Ownership tags for resources created by rdstry.

Every instance and snapshot rdstry creates carries two tags, attached in the
creating call: ``rt_name`` (application name) and ``rt_time`` (creation
time). Resources carrying both are treated as owned and may be listed and
deleted by the maintenance commands.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, TypeVar

from ..aws.gateway import RDSGateway
from ..models.resource import RDSResource, resource_kind
from ..utils.naming import APP_NAME, format_time

RT_NAME_KEY = "rt_name"
RT_TIME_KEY = "rt_time"

# Matches required to treat a resource as owned: one for an rt_name value with
# the application prefix, one for the presence of rt_time. Fixed because
# rdstry only ever writes these two keys.
OWNERSHIP_MATCH_THRESHOLD = 2

R = TypeVar("R", bound=RDSResource)


class TagRegistry:
    """Creates ownership tags and recognises owned resources.

    Attributes:
        gateway: RDS gateway used to list resource tags
        app_name: Prefix required on the rt_name tag value
    """

    def __init__(
        self,
        gateway: RDSGateway,
        app_name: str = APP_NAME,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.gateway = gateway
        self.app_name = app_name
        self.logger = logger or logging.getLogger(__name__)

    def tags(self, now: Optional[datetime] = None) -> List[Dict[str, str]]:
        """Return the ownership tag pair for a resource about to be created."""
        return [
            {"Key": RT_NAME_KEY, "Value": self.app_name},
            {"Key": RT_TIME_KEY, "Value": format_time(now)},
        ]

    def count_matches(self, tag_list: List[Dict[str, str]]) -> int:
        """Count ownership tag matches in a tag list."""
        matches = 0
        for tag in tag_list:
            key = tag.get("Key")
            if key == RT_NAME_KEY:
                if tag.get("Value", "").startswith(self.app_name):
                    matches += 1
            elif key == RT_TIME_KEY:
                matches += 1
        return matches

    def is_owned(self, resource: RDSResource) -> bool:
        """Return True if the resource carries the ownership tag pair.

        Raises:
            ProviderError: If listing the resource's tags fails
            TypeError: If resource is neither a DBInstance nor a DBSnapshot
        """
        tag_list = self.gateway.list_tags(resource)
        if not tag_list:
            return False

        owned = self.count_matches(tag_list) >= OWNERSHIP_MATCH_THRESHOLD
        self.logger.debug(f"{resource_kind(resource)} {resource.identifier} owned: {owned}")
        return owned

    def filter_owned(self, resources: Sequence[R]) -> List[R]:
        """Return the owned resources, keeping their order.

        The first tag lookup failure aborts the whole filter.
        """
        return [resource for resource in resources if self.is_owned(resource)]

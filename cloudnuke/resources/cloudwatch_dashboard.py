"""
CloudWatch dashboards, deleted in bulk by name.
"""

from __future__ import annotations

from typing import Any, List

from cloudnuke.core.context import RunContext
from cloudnuke.core.filters import ResourceValue
from cloudnuke.core.resource import Candidate, ResourceType
from cloudnuke.core.strategies import bulk_deleter

# DeleteDashboards accepts at most 100 names per call
MAX_DASHBOARDS_PER_CALL = 100


def delete_dashboards(ctx: RunContext, cloudwatch: Any, names: List[str]) -> None:
    cloudwatch.delete_dashboards(DashboardNames=list(names))


class CloudWatchDashboards(ResourceType):
    name = "cloudwatch-dashboard"
    batch_size = MAX_DASHBOARDS_PER_CALL
    nuker = bulk_deleter(delete_dashboards, batch_size=MAX_DASHBOARDS_PER_CALL)

    def init_client(self, aws_client):
        return aws_client.get_client("cloudwatch")

    def list_candidates(self, ctx: RunContext) -> List[Candidate]:
        candidates = []
        paginator = self.client.get_paginator("list_dashboards")
        for page in paginator.paginate():
            ctx.check()
            for entry in page.get("DashboardEntries", []):
                name = entry["DashboardName"]
                candidates.append(
                    Candidate(
                        identifier=name,
                        value=ResourceValue(name=name, time=entry.get("LastModified")),
                        details={"size": entry.get("Size")},
                    )
                )
        return candidates

"""
IAM roles.

A role cannot be deleted while it sits in an instance profile or has
policies attached, so each role goes through its own small teardown:
instance profiles, managed policies, inline policies, then the role.
Roles are processed one at a time to stay under IAM's low rate limits.

Service-linked roles (``/aws-service-role/``) and SSO-managed roles
(``/aws-reserved/``) are owned by AWS and never listed.
"""

from __future__ import annotations

import logging
from typing import Any, List

from cloudnuke.core.context import RunContext
from cloudnuke.core.filters import ResourceValue
from cloudnuke.core.resource import Candidate, ResourceType
from cloudnuke.core.strategies import sequential_deleter
from cloudnuke.resources.common import tags_to_dict

# Module logger
logger = logging.getLogger(__name__)

PROTECTED_PATH_PREFIXES = ("/aws-service-role/", "/aws-reserved/")


def nuke_role(ctx: RunContext, iam: Any, role_name: str) -> None:
    """Detach everything from ``role_name``, then delete it."""
    profiles = iam.get_paginator("list_instance_profiles_for_role")
    for page in profiles.paginate(RoleName=role_name):
        for profile in page.get("InstanceProfiles", []):
            profile_name = profile["InstanceProfileName"]
            ctx.check()
            iam.remove_role_from_instance_profile(
                InstanceProfileName=profile_name, RoleName=role_name
            )
            iam.delete_instance_profile(InstanceProfileName=profile_name)
            logger.debug(f"Deleted instance profile {profile_name} of role {role_name}")

    attached = iam.get_paginator("list_attached_role_policies")
    for page in attached.paginate(RoleName=role_name):
        for policy in page.get("AttachedPolicies", []):
            ctx.check()
            iam.detach_role_policy(RoleName=role_name, PolicyArn=policy["PolicyArn"])
            logger.debug(f"Detached {policy['PolicyArn']} from role {role_name}")

    inline = iam.get_paginator("list_role_policies")
    for page in inline.paginate(RoleName=role_name):
        for policy_name in page.get("PolicyNames", []):
            ctx.check()
            iam.delete_role_policy(RoleName=role_name, PolicyName=policy_name)
            logger.debug(f"Deleted inline policy {policy_name} of role {role_name}")

    ctx.check()
    iam.delete_role(RoleName=role_name)


class IAMRoles(ResourceType):
    """Customer-managed IAM roles, identified by role name."""

    name = "iam-role"
    is_global = True
    batch_size = 20
    nuker = sequential_deleter(nuke_role)

    def init_client(self, aws_client):
        return aws_client.get_client("iam")

    def list_candidates(self, ctx: RunContext) -> List[Candidate]:
        candidates = []
        paginator = self.client.get_paginator("list_roles")
        for page in paginator.paginate():
            ctx.check()
            for role in page.get("Roles", []):
                if role.get("Path", "/").startswith(PROTECTED_PATH_PREFIXES):
                    continue
                role_name = role["RoleName"]
                # ListRoles does not return tags
                tags = tags_to_dict(self.client.list_role_tags(RoleName=role_name).get("Tags"))
                candidates.append(
                    Candidate(
                        identifier=role_name,
                        value=ResourceValue(
                            name=role_name, time=role.get("CreateDate"), tags=tags
                        ),
                        details={"arn": role.get("Arn"), "path": role.get("Path")},
                    )
                )
        return candidates

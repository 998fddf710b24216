"""Admin tool that opens a welcome thread between a new member and their location's admins."""

import logging
from typing import Any

from pydantic import BaseModel

from fabric_core.messaging.protocol import MessageDestination
from fabric_core.tools.base import LLMTool, ToolContext
from fabric_core.tools.documents import DocumentStore, OfficeLocation

logger = logging.getLogger(__name__)


class OnboardingError(RuntimeError):
    """The member or their location is not set up for onboarding."""


class OnboardingThreadResult(BaseModel):
    member_slack_id: str
    channel: str
    location: OfficeLocation


CREATE_ONBOARDING_THREAD_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {
        "memberSlackId": {
            "type": "string",
            "description": 'The member\'s Slack ID, e.g. "U07BA4JA3HC"',
        },
    },
    "required": ["memberSlackId"],
}


def admins_sentence(admin_slack_ids: list[str], location: str) -> str:
    names = " and ".join(f"<@{slack_id}>" for slack_id in admin_slack_ids)
    if len(admin_slack_ids) > 1:
        return (
            f"{names} are also on this thread. They're the admin team for "
            f"{location} and can help with anything you need."
        )
    return (
        f"{names} is also on this thread. They're the admin for {location} "
        "and can help with anything you need."
    )


def welcome_text(member_slack_id: str, admin_slack_ids: list[str], location: str) -> str:
    return (
        f"Hi <@{member_slack_id}>! I'm Fabric, an AI assistant for member connections.\n\n"
        "Tag me anytime if you need help making connections based on interests "
        "and experience.\n\n"
        f"{admins_sentence(admin_slack_ids, location)}"
    )


def create_onboarding_thread_tool(store: DocumentStore) -> LLMTool:
    """Open a welcome thread with a member and their location's admins."""

    async def create(args: dict[str, Any], context: ToolContext) -> OnboardingThreadResult:
        if context.messaging is None:
            raise OnboardingError("No messaging client available to open the thread")
        member_slack_id = args["memberSlackId"]

        member = await store.get_member_by_slack_id(member_slack_id)
        if member is None:
            raise OnboardingError(f"Member not found for Slack ID {member_slack_id}")
        if member.location is None:
            raise OnboardingError(
                f"No location for member {member_slack_id}; it may not be synced yet"
            )

        config = await store.get_onboarding_config(member.location)
        if config is None:
            raise OnboardingError(f"No onboarding config for {member.location}")
        if not config.admin_user_slack_ids:
            raise OnboardingError(f"No admin users found for {member.location}")

        user_ids = [*config.admin_user_slack_ids, member_slack_id]
        logger.info("Creating onboarding thread users=%s", user_ids)
        channel = await context.messaging.open_conversation(user_ids)
        await context.messaging.set_topic(channel, f"Welcome {member.name}!")

        destination = MessageDestination(channel=channel)
        await context.messaging.create_message(
            destination,
            welcome_text(member_slack_id, config.admin_user_slack_ids, member.location),
        )
        if config.onboarding_message_content:
            await context.messaging.create_message(destination, config.onboarding_message_content)

        return OnboardingThreadResult(
            member_slack_id=member_slack_id, channel=channel, location=member.location
        )

    return LLMTool(
        name="createOnboardingThread",
        description=(
            "Create an onboarding / welcome thread for a member. Use this when an admin "
            "asks you to onboard a member; it may be asked more than once for the same "
            "member, so confirm that is intended. The thread includes the location's "
            "admins and the member and is seeded with welcome messages. Returns the "
            "new thread's channel, which you should share with the user."
        ),
        parameters=CREATE_ONBOARDING_THREAD_PARAMETERS,
        impl=create,
        describe=lambda args: f"Creating onboarding thread for <@{args['memberSlackId']}>",
        admin_only=True,
    )

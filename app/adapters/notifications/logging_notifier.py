"""Default AssignmentNotifier — writes completed assignments to the log."""

import logging

from app.application.ports.notifier_port import AssignmentEvent, AssignmentNotifier

logger = logging.getLogger(__name__)


class LoggingNotifier(AssignmentNotifier):
    async def assignment_completed(self, event: AssignmentEvent) -> None:
        logger.info(
            "Assignment event: handoff=%s conversation=%s type=%s team %s→%s user %s→%s",
            event.handoff_id, event.conversation_id, event.handoff_type.value,
            event.previous_team_id, event.team_id, event.previous_user_id, event.user_id,
        )

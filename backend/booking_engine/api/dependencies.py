"""
Request dependencies shared by route modules.
"""

from fastapi import Header
import structlog


async def get_participant_id(
    x_participant_id: int = Header(..., alias="X-Participant-ID", gt=0),
) -> int:
    """
    Participant making the request.

    Authentication happens upstream; the gateway forwards the verified
    participant id in this header.
    """
    structlog.contextvars.bind_contextvars(participant_id=x_participant_id)
    return x_participant_id

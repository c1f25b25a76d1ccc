from typing import Optional

RELAY_ACTOR_TYPE = "machineUser"


def is_relay_origin(actor_type: Optional[str], relay_actor_type: str = RELAY_ACTOR_TYPE) -> bool:
    """True when a ticketing chat was written by our own relay actor.

    Such chats are SMS we already relayed into the thread; sending them back out
    would loop forever.
    """
    return actor_type == relay_actor_type

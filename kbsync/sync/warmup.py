"""
Warm-up messages of a client's chat-bot.

The warm-up conversation is an ordered list of alternating user/assistant
messages. Incoming pairs update the answer of an existing question with the
same text, or are appended as a new exchange.
"""

import copy
from typing import Any, Dict, List

from .logging_manager import get_logger
from .remote_client import RemoteDocumentClient

logger = get_logger(__name__)

Message = Dict[str, Any]


def merge_warmup_messages(existing: List[Message], messages: List[Message]) -> List[Message]:
    """
    Merge (user, assistant) message pairs into an existing warm-up list.

    Args:
        existing: Current warm-up messages; not modified
        messages: Alternating user/assistant messages to merge

    Returns:
        The merged list
    """
    if len(messages) % 2:
        raise ValueError('Warm-up messages must come in user/assistant pairs')

    merged = copy.deepcopy(existing or [])
    for i in range(0, len(messages), 2):
        user_message, assistant_message = messages[i], messages[i + 1]
        existing_index = next(
            (
                index for index, msg in enumerate(merged)
                if msg.get('role') == 'user'
                and msg.get('content') == user_message.get('content')
                and index < len(merged) - 1
            ),
            None
        )
        if existing_index is not None:
            merged[existing_index + 1] = assistant_message
        else:
            merged.extend([user_message, assistant_message])
    return merged


async def update_warmup_messages(client: RemoteDocumentClient, messages: List[Message], client_id: str) -> List[Message]:
    """
    Merge messages into the chat-bot's warm-up conversation and save it.

    Raises:
        RemoteUnavailableError: If reading or updating the chat-bot failed
    """
    try:
        chatbot = await client.get_chatbot(client_id)
        warmup_messages = merge_warmup_messages(chatbot.get('warm_up_messages') or [], messages)
        await client.update_chatbot(client_id, {
            'project_id': chatbot.get('project_id') or client.credentials(client_id).project_id,
            'warm_up_messages': warmup_messages,
        })
    except Exception as e:
        logger.error(f"Error - [{client_id}] Error updating warm-up messages: {e}")
        raise

    logger.info(f"[{client_id}] Chat-bot warm-up messages updated successfully ({len(warmup_messages)} messages)")
    return warmup_messages

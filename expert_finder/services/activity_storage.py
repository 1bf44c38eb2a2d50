"""
Azure Table storage for profile card bookkeeping.

Each rendered "my profile" card gets a random card id; the table maps that id
to the id of the message carrying the card so the card can later be replaced
in place after an edit.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from azure.core.exceptions import HttpResponseError, ResourceExistsError, ResourceNotFoundError
from azure.data.tables import UpdateMode
from azure.data.tables.aio import TableClient

from expert_finder.models import ConversationActivityRecord

logger = logging.getLogger(__name__)

USER_PROFILE_ACTIVITY_TABLE = "UserProfileActivityInfo"
USER_PROFILE_ACTIVITY_PARTITION = "UserProfileActivityInfo"


def to_entity(record: ConversationActivityRecord) -> Dict[str, Any]:
    """Table entity for a record; the card id doubles as the row key."""
    return {
        "PartitionKey": USER_PROFILE_ACTIVITY_PARTITION,
        "RowKey": record.my_profile_card_id,
        "MyProfileCardId": record.my_profile_card_id,
        "MyProfileCardActivityId": record.my_profile_card_activity_id,
    }


def from_entity(entity: Dict[str, Any]) -> ConversationActivityRecord:
    return ConversationActivityRecord(
        my_profile_card_id=entity.get("MyProfileCardId") or entity["RowKey"],
        my_profile_card_activity_id=entity.get("MyProfileCardActivityId"),
    )


class UserProfileActivityStorage:
    """Insert-or-replace and point lookup of card id -> activity id"""

    def __init__(
        self,
        connection_string: Optional[str] = None,
        table_name: str = USER_PROFILE_ACTIVITY_TABLE,
        table_client: Optional[TableClient] = None,
    ):
        self.connection_string = connection_string
        self.table_name = table_name
        self._table_client = table_client
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the table once per process. Safe to call concurrently."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            if self._table_client is None:
                if not self.connection_string:
                    raise RuntimeError("STORAGE_CONNECTION_STRING is not configured")
                self._table_client = TableClient.from_connection_string(
                    self.connection_string, table_name=self.table_name
                )
            try:
                await self._table_client.create_table()
                logger.info(f"Created table {self.table_name}")
            except ResourceExistsError:
                pass
            self._initialized = True

    async def upsert(self, card_id: str, activity_id: str) -> bool:
        """Store or replace the binding; False when the write fails."""
        await self.initialize()
        entity = to_entity(ConversationActivityRecord(card_id, activity_id))
        try:
            await self._table_client.upsert_entity(entity, mode=UpdateMode.REPLACE)
            return True
        except HttpResponseError as e:
            logger.error(f"Failed to store activity id for card {card_id}: {e}", exc_info=True)
            return False

    async def lookup(self, card_id: str) -> Optional[ConversationActivityRecord]:
        await self.initialize()
        try:
            entity = await self._table_client.get_entity(
                partition_key=USER_PROFILE_ACTIVITY_PARTITION, row_key=card_id
            )
        except ResourceNotFoundError:
            return None
        return from_entity(entity)

    async def close(self) -> None:
        if self._table_client is not None:
            await self._table_client.close()

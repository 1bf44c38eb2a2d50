"""
Bot Framework Storage backed by Azure Table storage.

Conversation and user state documents are stored as JSON in a single table,
one row per state key. Writes are last-write-wins.
"""

import asyncio
import json
import logging
from typing import Dict, List, Optional
from urllib.parse import quote

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.data.tables import UpdateMode
from azure.data.tables.aio import TableClient
from botbuilder.core import Storage

logger = logging.getLogger(__name__)

STATE_PARTITION = "BotState"


def row_key_for(key: str) -> str:
    # Row keys may not contain '/', '\\', '#' or '?'
    return quote(key, safe="")


class TableStorage(Storage):
    """Storage implementation for ConversationState and UserState"""

    def __init__(
        self,
        connection_string: Optional[str] = None,
        table_name: str = "BotState",
        table_client: Optional[TableClient] = None,
    ):
        super().__init__()
        self.connection_string = connection_string
        self.table_name = table_name
        self._table_client = table_client
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def initialize(self) -> None:
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            if self._table_client is None:
                self._table_client = TableClient.from_connection_string(
                    self.connection_string, table_name=self.table_name
                )
            try:
                await self._table_client.create_table()
            except ResourceExistsError:
                pass
            self._initialized = True

    async def read(self, keys: List[str]) -> Dict[str, object]:
        if not keys:
            raise ValueError("Keys are required when reading")
        await self.initialize()

        items = {}
        for key in keys:
            try:
                entity = await self._table_client.get_entity(
                    partition_key=STATE_PARTITION, row_key=row_key_for(key)
                )
            except ResourceNotFoundError:
                continue
            items[key] = json.loads(entity["Document"])
        return items

    async def write(self, changes: Dict[str, object]):
        if changes is None:
            raise ValueError("Changes are required when writing")
        await self.initialize()

        for key, value in changes.items():
            entity = {
                "PartitionKey": STATE_PARTITION,
                "RowKey": row_key_for(key),
                "Document": json.dumps(value),
            }
            await self._table_client.upsert_entity(entity, mode=UpdateMode.REPLACE)

    async def delete(self, keys: List[str]):
        await self.initialize()
        for key in keys:
            # delete_entity is a no-op for missing rows
            await self._table_client.delete_entity(
                partition_key=STATE_PARTITION, row_key=row_key_for(key)
            )

    async def close(self) -> None:
        if self._table_client is not None:
            await self._table_client.close()

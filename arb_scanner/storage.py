# arb_scanner/storage.py
import asyncio
import json
import os
from typing import Dict, List

import aiofiles

from .errors import StorageError
from .models import Category, Opportunity

Records = Dict[str, List[dict]]


def _empty() -> Records:
    return {c.value: [] for c in Category}


class OpportunityRepository:
    """
    Local JSON file holding the opportunities of the last run:
    {"executable": [...], "potential": [...]}
    """
    def __init__(self, path: str = "db/db.json"):
        self.path = path
        self._lock = asyncio.Lock()

    async def _read(self) -> Records:
        if not os.path.exists(self.path):
            return _empty()
        try:
            async with aiofiles.open(self.path, mode='r') as f:
                content = await f.read()
        except OSError as e:
            raise StorageError(f"cannot read {self.path}: {e}") from e
        if not content.strip():
            return _empty()
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise StorageError(f"{self.path} is corrupt: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"{self.path} does not hold an opportunity database")

        records = _empty()
        for key in records:
            records[key] = list(data.get(key) or [])
        return records

    async def _write(self, records: Records):
        tmp_path = f"{self.path}.tmp"
        directory = os.path.dirname(self.path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            async with aiofiles.open(tmp_path, mode='w') as f:
                await f.write(json.dumps(records, indent=2, default=str))
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"cannot write {self.path}: {e}") from e

    async def append(self, opportunity: Opportunity, category: Category):
        async with self._lock:
            records = await self._read()
            records[category.value].append(opportunity.to_dict())
            await self._write(records)

    async def clear(self, category: Category):
        async with self._lock:
            records = await self._read()
            records[category.value] = []
            await self._write(records)

    async def get_all(self) -> Records:
        """Re-reads the file on every call so a running scan is visible."""
        async with self._lock:
            return await self._read()

    async def get_opportunities(self, category: Category) -> List[Opportunity]:
        records = await self.get_all()
        return [Opportunity.from_dict(r) for r in records[category.value]]

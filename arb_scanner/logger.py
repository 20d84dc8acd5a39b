# arb_scanner/logger.py
import asyncio
import logging
import os
import sys
import time
from typing import Any, List, Optional

import aiofiles
from aiocsv import AsyncWriter

from .models import Category, Opportunity

AUDIT_HEADER = [
    "timestamp",
    "category",
    "pair",
    "profit_percentage",
    "buy_source",
    "buy_price",
    "sell_source",
    "sell_price",
    "common_networks",
]


class OpportunityAuditLog:
    """
    Non-blocking CSV trail of every opportunity a run produced.
    Disk I/O is decoupled from the pipeline through an asyncio Queue.
    """
    def __init__(self, filepath: str):
        self.filepath = filepath
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker_task: Optional[asyncio.Task] = None

    async def start(self):
        """
        Creates the file (with header) if missing and starts the background writer.
        """
        directory = os.path.dirname(self.filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        if not os.path.exists(self.filepath) or os.path.getsize(self.filepath) == 0:
            async with aiofiles.open(self.filepath, mode='w', newline='') as f:
                writer = AsyncWriter(f, dialect='unix')
                await writer.writerow(AUDIT_HEADER)
        self._worker_task = asyncio.create_task(self._writer_worker())

    async def log_opportunity(self, opp: Opportunity, category: Category):
        networks = sorted(opp.validation.common_networks) if opp.validation else []
        await self.log_row([
            time.strftime('%Y-%m-%d %H:%M:%S'),
            category.value,
            opp.pair,
            f"{opp.profit_percentage:.4f}",
            opp.buy_at.source,
            opp.buy_at.price,
            opp.sell_at.source,
            opp.sell_at.price,
            "|".join(networks),
        ])

    async def log_row(self, data: List[Any]):
        await self._queue.put(data)

    async def _writer_worker(self):
        while True:
            row = await self._queue.get()
            try:
                async with aiofiles.open(self.filepath, mode='a', newline='') as f:
                    writer = AsyncWriter(f, dialect='unix')
                    await writer.writerow(row)
            except OSError as e:
                # the scan keeps going when the audit file is unwritable
                print(f"AUDIT LOG FAILURE: {e}", file=sys.stderr)
            finally:
                self._queue.task_done()

    async def stop(self):
        """Flushes pending rows and stops the writer."""
        if self._worker_task is None:
            return
        await self._queue.join()
        self._worker_task.cancel()
        try:
            await self._worker_task
        except asyncio.CancelledError:
            pass
        self._worker_task = None


def setup_console_logger(name: str, level: str):
    """
    Sets up the standard Python logger for console output.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter('%(asctime)s | %(levelname)s | %(module)s | %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger

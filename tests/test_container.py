"""Tests for orchestrator wiring."""

from dataclasses import replace

import httpx
import pytest

from booking_orchestrator.clients.tokens import StaticTokenProvider
from booking_orchestrator.config import AppConfig, DirectoryConfig
from booking_orchestrator.container import create_directory, create_orchestrator
from booking_orchestrator.errors import ConfigurationError
from booking_orchestrator.scheduling.cache import TTLCache
from tests.conftest import FIXED_NOW, LOCATION_ID, TZ, build_directory


def counting_transport(requests: list) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={})

    return httpx.MockTransport(handler)


class TestCreateOrchestrator:
    @pytest.mark.asyncio
    async def test_empty_shared_store_is_used(self):
        shared = TTLCache(3600)
        requests = []
        first = create_orchestrator(
            LOCATION_ID, build_directory(), StaticTokenProvider("t"),
            schedule_cache_store=shared, now_fn=lambda: FIXED_NOW,
            transport=counting_transport(requests),
        )
        second = create_orchestrator(
            LOCATION_ID, build_directory(), StaticTokenProvider("t"),
            schedule_cache_store=shared, now_fn=lambda: FIXED_NOW,
            transport=counting_transport(requests),
        )
        async with first, second:
            await first.schedule_cache.get_schedule("cal_swedish", TZ)
            await second.schedule_cache.get_schedule("cal_swedish", TZ)

        assert len(requests) == 1
        assert len(shared) == 1

    @pytest.mark.asyncio
    async def test_default_store_is_private(self):
        requests = []
        orchestrators = [
            create_orchestrator(
                LOCATION_ID, build_directory(), StaticTokenProvider("t"),
                now_fn=lambda: FIXED_NOW, transport=counting_transport(requests),
            )
            for _ in range(2)
        ]
        for orchestrator in orchestrators:
            async with orchestrator:
                await orchestrator.schedule_cache.get_schedule("cal_swedish", TZ)
        assert len(requests) == 2


class TestCreateDirectory:
    def test_memory_backend_needs_file(self):
        config = replace(AppConfig(), directory=replace(DirectoryConfig(), directory_file=""))
        with pytest.raises(ConfigurationError):
            create_directory(config)

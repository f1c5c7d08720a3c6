import pytest
import pytest_asyncio

from .utils import SimulatedCas, build_cas_app


@pytest.fixture
def cas() -> SimulatedCas:
    return SimulatedCas()


@pytest_asyncio.fixture
async def cas_server(aiohttp_server, cas):
    return await aiohttp_server(build_cas_app(cas))

"""Test config and shared fixtures."""
import pytest
from typing import AsyncGenerator, List
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from dataaccess.database.sql_driver import SQLDriver
from dataaccess.repository import UnitOfWork, clear_global_filters
from tests.models import Category, Product


@pytest.fixture
def database_url(tmp_path) -> str:
    """File-backed SQLite so separate sessions get separate connections."""
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def driver(database_url: str) -> AsyncGenerator[SQLDriver, None]:
    """Create driver with all test tables."""
    driver = SQLDriver(database_url)
    await driver.create_all(SQLModel.metadata)
    yield driver
    await driver.disconnect()


@pytest.fixture
def session_factory(driver: SQLDriver) -> async_sessionmaker:
    return driver.session_factory


@pytest.fixture
async def uow(session_factory) -> AsyncGenerator[UnitOfWork, None]:
    """UnitOfWork released after the test."""
    async with UnitOfWork(session_factory()) as unit_of_work:
        yield unit_of_work


@pytest.fixture
def new_uow(session_factory):
    """Factory for additional, independent UnitOfWork instances (caller closes them)."""
    def _new_uow() -> UnitOfWork:
        return UnitOfWork(session_factory())
    return _new_uow


@pytest.fixture
async def seed_products(session_factory) -> List[Product]:
    """25 committed products: ids 1..25, price = id * 10."""
    products = [
        Product(id=i, name=f"Product {i:02d}", price=i * 10.0, stock=i)
        for i in range(1, 26)
    ]
    session: AsyncSession = session_factory()
    async with session:
        session.add_all(products)
        await session.commit()
    return products


@pytest.fixture
async def seed_categories(session_factory) -> List[Category]:
    """Two categories; 'Tools' holds three products, 'Garden' none."""
    tools = Category(id=1, name="Tools")
    garden = Category(id=2, name="Garden")
    products = [
        Product(id=100 + i, name=f"Tool {i}", price=5.0 * i, category_id=1)
        for i in range(1, 4)
    ]
    session: AsyncSession = session_factory()
    async with session:
        session.add_all([tools, garden])
        await session.flush()
        session.add_all(products)
        await session.commit()
    return [tools, garden]


@pytest.fixture(autouse=True)
def reset_global_filters():
    """Global filters are process-wide; never leak them between tests."""
    yield
    clear_global_filters()

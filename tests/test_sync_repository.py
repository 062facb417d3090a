"""Sync twins: Repository over a plain Session, and inside AsyncSession.run_sync."""
import pytest
from sqlmodel import Session, SQLModel, create_engine

from dataaccess.repository import Repository, UnitOfWork
from tests.models import Product


@pytest.fixture
def sync_session(tmp_path):
    """Synchronous session on its own SQLite file with 25 products."""
    engine = create_engine(f"sqlite:///{tmp_path / 'sync.db'}")
    SQLModel.metadata.create_all(engine)
    with Session(engine, autoflush=False, expire_on_commit=False) as session:
        session.add_all([Product(id=i, name=f"Product {i:02d}", price=i * 10.0, stock=i) for i in range(1, 26)])
        session.commit()
        # Start from an empty identity map, like a fresh unit of work
        session.expunge_all()
        yield session
    engine.dispose()


@pytest.fixture
def repo(sync_session) -> Repository[Product]:
    return Repository(sync_session, Product)


class TestSyncReads:

    def test_get_first_or_default(self, repo):
        product = repo.get_first_or_default(Product.price >= 100, order_by=Product.price)

        assert product.id == 10

    def test_get_first_or_default_selector(self, repo):
        assert repo.get_first_or_default_selector(Product.name, Product.id == 2) == "Product 02"
        assert repo.get_first_or_default_selector(predicate=Product.id == 2).stock == 2

    def test_get_to_page_list(self, repo):
        page = repo.get_to_page_list(order_by=Product.id, page_size=10, page_index=2)

        assert [p.id for p in page.items] == list(range(11, 21))
        assert page.total_count == 25
        assert page.total_pages == 3

    def test_count_and_find(self, repo):
        assert repo.count() == 25
        assert repo.count(Product.stock > 20) == 5
        assert repo.find(7).name == "Product 07"
        assert repo.find(700) is None

    def test_get_all_statement(self, repo, sync_session):
        products = sync_session.exec(repo.get_all(Product.id < 3, order_by=Product.id)).all()

        assert [p.id for p in products] == [1, 2]

    def test_untracked_get_all_statement(self, repo, sync_session):
        products = sync_session.exec(repo.get_all(Product.id < 3, disable_tracking=True)).all()

        assert len(products) == 2
        assert all(p not in sync_session for p in products)

    def test_untracked_read(self, repo, sync_session):
        product = repo.get_first_or_default(Product.id == 1, disable_tracking=True)
        product.price = 0.0

        assert product not in sync_session
        assert not sync_session.dirty


class TestSyncWrites:

    def test_insert_update_fields_remove(self, repo, sync_session):
        created = repo.insert(Product(name="Sync"))
        repo.update_fields(Product(id=1, name="stale", price=1.0), Product.name)
        repo.remove(Product(id=2, name="gone"))
        sync_session.commit()

        assert created.id is not None
        first = repo.get_first_or_default(Product.id == 1, disable_tracking=True)
        assert (first.name, first.price) == ("stale", 10.0)
        assert repo.find(2) is None

    @pytest.mark.asyncio
    async def test_async_operations_need_async_session(self, repo):
        with pytest.raises(TypeError):
            await repo.get_all_async()


class TestRunSync:
    """Sync twins executed on an AsyncSession through run_sync."""

    @pytest.mark.asyncio
    async def test_sync_twins_inside_run_sync(self, uow: UnitOfWork, seed_products):
        repo = uow.get_repository(Product)

        def read(_session):
            first = repo.get_first_or_default(Product.id == 5)
            page = repo.get_to_page_list(order_by=Product.id, page_size=5, page_index=5)
            return first, page

        first, page = await uow.session.run_sync(read)

        assert first.name == "Product 05"
        assert [p.id for p in page.items] == [21, 22, 23, 24, 25]

"""get_property_name test cases."""
import pytest
from sqlalchemy import func

from dataaccess.exceptions import InvalidPropertyExpression
from dataaccess.repository import Repository, get_property_name
from tests.models import Category, Product


class TestGetPropertyName:

    def test_mapped_attribute(self):
        assert get_property_name(Product.name) == "name"

    def test_member_lambda(self):
        assert get_property_name(lambda p: p.price) == "price"

    def test_relationship_attribute(self):
        assert get_property_name(Product.category) == "category"

    @pytest.mark.parametrize(
        "expression",
        [
            lambda p: 42,
            lambda p: "name",
            lambda p: p,
            lambda p: p.name.upper(),
            lambda p: p.category.name,
            lambda p: (p.name, p.price),
            lambda p: p.price + 1,
            "name",
            42,
            None,
            Product,
        ],
    )
    def test_non_member_expressions_fail(self, expression):
        with pytest.raises(InvalidPropertyExpression) as exc_info:
            get_property_name(expression)
        assert exc_info.value.param_name == "property_expression"
        assert isinstance(exc_info.value, ValueError)

    def test_sql_function_fails(self):
        with pytest.raises(InvalidPropertyExpression):
            get_property_name(func.lower(Product.name))

    def test_attribute_of_other_model_fails(self):
        with pytest.raises(InvalidPropertyExpression):
            get_property_name(Category.name, model=Product)

    @pytest.mark.asyncio
    async def test_repository_method(self, uow):
        repo: Repository[Product] = uow.get_repository(Product)

        assert repo.get_property_name(Product.stock) == "stock"
        assert repo.get_property_name(lambda p: p.is_deleted) == "is_deleted"
        with pytest.raises(InvalidPropertyExpression):
            repo.get_property_name(lambda p: p.stock * 2)

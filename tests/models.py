"""Entity models used by the test-suite."""
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship


class Category(SQLModel, table=True):
    __tablename__ = "categories"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)

    products: List["Product"] = Relationship(back_populates="category")


class Product(SQLModel, table=True):
    __tablename__ = "products"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    price: float = Field(default=0)
    stock: int = Field(default=0)
    is_deleted: bool = Field(default=False)  # soft delete flag
    category_id: Optional[int] = Field(default=None, foreign_key="categories.id")

    category: Optional[Category] = Relationship(back_populates="products")


class ProductRead(SQLModel):
    """Plain schema, not a table: no repository can be built for it."""
    name: str
    price: float

from typing import Annotated

from autoswagger.attributes import ApiModel, ApiProperty
from autoswagger.contracts import BelongsTo, HasMany, Model


class Product(Model):
    id: int
    name: str
    price: float


class Customer(Model):
    fillable = ["name", "email", "website_url", "is_active", "total_amount"]


@ApiModel(name="Order", description="A placed order")
class OrderRecord(Model):
    id: Annotated[int, ApiProperty(description="Order number", required=True, example=42)]
    status: Annotated[str, ApiProperty(enum=["pending", "paid"], required=True)]
    note: Annotated[str | None, ApiProperty(nullable=True)]
    internal_code: Annotated[str, ApiProperty(hidden=True)]


class User(Model):
    """A registered user.

    @property int $id
    @property string $name Full name
    @property email $email Login address
    @property Collection<Post> $posts
    """

    def posts(self) -> HasMany["Post"]:
        return self.has_many(Post)

    def department(self) -> BelongsTo["Department"]:
        return self.belongs_to(Department)

    def has_many_comments(self):
        return []

    def profile(self):
        """Not a relation: no relation return type and no relation verb."""
        return None


class Post(Model):
    title: str
    """Post title.

    @example Hello world
    """

    body: str
    """Markdown body."""

    views: int
    """@var int
    @example 10
    """

    def author(self) -> BelongsTo["User"]:
        return self.belongs_to(User)


class Department(Model):
    name: str


class Author(Model):
    """@property int $id
    @property Book[] $books
    """


class Book(Model):
    """@property int $id
    @property Author $author
    """


class Team(Model):
    name: str

    def members(self) -> HasMany["Member"]:
        return self.has_many(Member)


class Member(Model):
    name: str

    def team(self) -> BelongsTo["Team"]:
        return self.belongs_to(Team)

from autoswagger.attributes import (
    ApiException,
    ApiOperation,
    ApiParameter,
    ApiRequestBody,
    ApiResponse,
    ApiSecurity,
    ApiSwagger,
    ApiTag,
)

from sample_app.models import Product
from sample_app.requests import BrokenRequest, CreateProductRequest, UpdateProductRequest
from sample_app.resources import ProductResource, UserCollection, UserResource


class ProductNotFound(Exception):
    pass


class OutOfStock(Exception):
    pass


@ApiTag(name="Products", description="Product management")
@ApiException(exception=OutOfStock, status_code=409, description="Out of stock")
class ProductController:
    def index(self):
        """List products.

        Returns every product, newest first.
        """
        return ProductResource.collection([])

    @ApiOperation(summary="Create a product", operation_id="createProduct")
    def store(self, request: CreateProductRequest) -> ProductResource:
        return ProductResource(Product(**request.data))

    def show(self, product: int) -> ProductResource:
        return ProductResource(Product(id=product))

    @ApiOperation(summary="Update a product")
    @ApiParameter(name="product", in_="path", description="Product id", type="integer")
    @ApiParameter(name="product", in_="path", description="Duplicate")
    def update(self, product: int, request: UpdateProductRequest):
        return None

    @ApiResponse(status_code=204, description="Deleted")
    @ApiException(exception=ProductNotFound, status_code=404)
    @ApiException(exception=OutOfStock, status_code=409, description="Cannot delete reserved stock")
    def destroy(self, product: int):
        return None

    @ApiSwagger(include=False)
    def legacy(self):
        return None

    @ApiRequestBody(description="Import file", ref="ImportPayload")
    @ApiResponse(status_code=202, description="Accepted")
    def bulk_import(self, request: BrokenRequest):
        return None

    @ApiResponse(status_code=200, description="Stock level", type="integer")
    @ApiException(exception=ProductNotFound, status_code=200)
    def stock(self, product: int):
        return None


@ApiSecurity(name="bearerAuth")
class UserController:
    def index(self) -> UserCollection:
        return UserCollection([])

    def show(self, id: int) -> UserResource:
        return UserResource(None)

    def posts(self, id, postId):
        return []

    @ApiSecurity(name="oauth", scopes=["users:write"])
    @ApiOperation(summary="Deactivate", deprecated=True, tags=["Admin"])
    def deactivate(self, id: int):
        return None


@ApiSwagger()
class ReportController:
    @ApiOperation(method="GET", path="/api/reports", summary="Reports from controller scan")
    def index(self):
        return []

    @ApiOperation(method="POST", path="/api/reports", summary="Declared only")
    def store(self):
        return None

    def unlisted(self):
        return None

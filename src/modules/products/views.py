"""Product API views.

Exposes the ``ProductService`` via HTTP using DRF ViewSets.  Browsing the
catalog is public; every write requires a staff principal.  Domain and
validation errors propagate to ``api_exception_handler``.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.permissions import IsAdminPrincipal, principal_from_request
from modules.products.dtos import AdjustStockDTO, CreateProductDTO, UpdateProductDTO
from modules.products.filters import ProductFilter
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.serializers import ProductSerializer
from modules.products.services import ProductService

_UPDATABLE_FIELDS = ("name", "price", "category", "description", "specs", "rating")


class ProductViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for Product operations.

    Uses ``ProductService`` with ``ProductDjangoRepository`` (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    filterset_class = ProductFilter
    search_fields = ["name", "code", "description"]
    ordering_fields = ["name", "price", "available_quantity", "created_at"]
    ordering = ["name", "id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Product.objects.none()
    serializer_class = ProductSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = ProductService(repository=ProductDjangoRepository())

    def get_permissions(self):
        if self.action in ("list", "retrieve"):
            return [AllowAny()]
        return [IsAdminPrincipal()]

    def get_queryset(self):
        return self._service.list_products()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        product = self._service.get_product(pk)
        return Response(ProductSerializer(product).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        data = request.data
        dto = CreateProductDTO(
            code=data.get("code", ""),
            name=data.get("name", ""),
            price=data.get("price", 0),
            category=data.get("category", ""),
            description=data.get("description", ""),
            specs=data.get("specs", {}),
            rating=data.get("rating", 0),
            available_quantity=data.get("available_quantity", 0),
        )
        product = self._service.create_product(dto, principal_from_request(request))
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/"""
        dto = UpdateProductDTO(
            **{f: request.data[f] for f in _UPDATABLE_FIELDS if f in request.data}
        )
        product = self._service.update_product(
            pk, dto, principal_from_request(request)
        )
        return Response(ProductSerializer(product).data)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/products/{pk}/"""
        return self.partial_update(request, pk)

    @action(detail=True, methods=["patch"], url_path="stock")
    def update_stock(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/stock/

        Accepts ``{"available_quantity": N}``.
        """
        dto = AdjustStockDTO(available_quantity=request.data.get("available_quantity"))
        product = self._service.adjust_stock(pk, dto, principal_from_request(request))
        return Response(ProductSerializer(product).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/products/{pk}/"""
        self._service.delete_product(pk, principal_from_request(request))
        return Response(status=status.HTTP_204_NO_CONTENT)

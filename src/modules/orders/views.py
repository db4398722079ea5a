"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.  Placing an
order and looking one up (by id or reference) are public; listing,
editing, payment, cancellation and deletion require a staff principal.
Domain and validation errors propagate to ``api_exception_handler``.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.permissions import IsAdminPrincipal, principal_from_request
from modules.orders.dtos import CreateOrderDTO, StatusChangeDTO, UpdateOrderDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AdminOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
)
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository

PUBLIC_ACTIONS = {"create", "retrieve", "by_ref"}


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.none()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    search_fields = ["ref", "customer_full_name", "customer_phone", "customer_email"]
    ordering_fields = ["created_at", "total", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )

    def get_permissions(self):
        if self.action in PUBLIC_ACTIONS:
            return [AllowAny()]
        return [IsAdminPrincipal()]

    def get_throttles(self) -> list[BaseThrottle]:
        if self.action == "create":
            self.throttle_scope = "order_creation"
        elif self.action in {"retrieve", "by_ref"}:
            self.throttle_scope = "order_lookup"
        else:
            self.throttle_scope = None
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_orders()

    def _render(self, request: Request, order: Order, status_code: int = status.HTTP_200_OK):
        serializer_class = (
            AdminOrderSerializer if principal_from_request(request) else OrderSerializer
        )
        return Response(serializer_class(order).data, status=status_code)

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Body: ``{"customer": {...}, "items": [...], "shipping_fee", "discount"}``.
        The order is stored ``pending``; stock is only deducted on payment.
        """
        dto = CreateOrderDTO.model_validate(request.data)
        order = self._service.create_order(dto)
        return self._render(request, order, status.HTTP_201_CREATED)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/ (``pk`` may also be a reference)."""
        return self._render(request, self._service.get_order(pk))

    @action(detail=False, methods=["get"], url_path=r"ref/(?P<ref>[^/]+)")
    def by_ref(self, request: Request, ref: str | None = None) -> Response:
        """GET /api/v1/orders/ref/{ref}/"""
        return self._render(request, self._service.get_order_by_ref(ref or ""))

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, ref, email, date range, total range) is handled
        by ``OrderFilter``; results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/

        Accepts ``status``, ``shipping_fee``, ``discount`` and ``notes``;
        the total is recomputed when an amount changes.
        """
        dto = UpdateOrderDTO.model_validate(request.data)
        order = self._service.update_order(pk, dto, principal_from_request(request))
        return self._render(request, order)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/"""
        return self.partial_update(request, pk)

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/status/"""
        dto = StatusChangeDTO.model_validate(request.data)
        order = self._service.update_status(
            pk, dto.status, principal_from_request(request), notes=dto.notes
        )
        return self._render(request, order)

    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/mark-paid/

        Deducts stock for every line or, on any shortage, for none; the
        409 body lists each offending line.
        """
        order = self._service.mark_paid(
            pk, principal_from_request(request), notes=request.data.get("notes", "")
        )
        return self._render(request, order)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancelling an order that holds deducted stock restores it.
        """
        order = self._service.cancel_order(
            pk, principal_from_request(request), notes=request.data.get("notes", "")
        )
        return self._render(request, order)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders/{pk}/"""
        self._service.delete_order(pk, principal_from_request(request))
        return Response(status=status.HTTP_204_NO_CONTENT)

from decimal import Decimal
from itertools import count

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.core.permissions import AdminPrincipal
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, CustomerInfoDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product, ProductCategory
from modules.products.repositories.django_repository import ProductDjangoRepository

_codes = count(1)


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def staff_user():
    return get_user_model().objects.create_user(
        username="storeadmin", password="testpass123", is_staff=True
    )


@pytest.fixture()
def admin_client(staff_user):
    """APIClient authenticated as a staff user."""
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture()
def customer_client():
    """APIClient authenticated as a non-staff user."""
    user = get_user_model().objects.create_user(
        username="shopper", password="testpass123"
    )
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def admin_principal(staff_user):
    return AdminPrincipal.from_user(staff_user)


@pytest.fixture()
def make_product():
    """Factory for catalog products with a unique code."""

    def _make(
        name="Aviator Frame",
        price=Decimal("1000.00"),
        available_quantity=10,
        category=ProductCategory.FRAMES,
        code=None,
    ):
        return Product.objects.create(
            code=code or f"TST-{next(_codes):04d}",
            name=name,
            price=price,
            category=category,
            available_quantity=available_quantity,
        )

    return _make


@pytest.fixture()
def order_service():
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


@pytest.fixture()
def place_order(order_service):
    """Place a pending order for ``[(product, quantity), ...]``."""

    def _place(lines, shipping_fee=Decimal("0"), discount=Decimal("0")):
        dto = CreateOrderDTO(
            customer=CustomerInfoDTO(full_name="Ada Obi", phone="+2348030000000"),
            items=[
                CreateOrderItemDTO(product_id=product.id, quantity=quantity)
                for product, quantity in lines
            ],
            shipping_fee=shipping_fee,
            discount=discount,
        )
        return order_service.create_order(dto)

    return _place

from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.core.exceptions import DomainError
from modules.core.permissions import AdminPrincipal
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, CustomerInfoDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product, ProductCategory
from modules.products.repositories.django_repository import ProductDjangoRepository


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=20)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created, admin = self._seed_users()
        products = self._seed_products()
        orders_created = self._seed_orders(products, admin, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> tuple[int, AdminPrincipal]:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="manager").exists():
            User.objects.create_user("manager", password="manager123", is_staff=True)
            created += 1
        return created, AdminPrincipal.from_user(User.objects.get(username="admin"))

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ("FRM-001", "Aviator Gold Frame", ProductCategory.FRAMES, Decimal("25000")),
            ("FRM-002", "Round Tortoise Frame", ProductCategory.FRAMES, Decimal("18500")),
            ("FRM-003", "Rimless Titanium Frame", ProductCategory.FRAMES, Decimal("42000")),
            ("FRM-004", "Kids Flex Frame", ProductCategory.FRAMES, Decimal("12000")),
            ("LNS-001", "Blue Cut Lenses", ProductCategory.LENSES, Decimal("15000")),
            ("LNS-002", "Photochromic Lenses", ProductCategory.LENSES, Decimal("28000")),
            ("LNS-003", "Progressive Lenses", ProductCategory.LENSES, Decimal("55000")),
            ("LNS-004", "Monthly Contact Lenses", ProductCategory.LENSES, Decimal("9500")),
            ("DRP-001", "Lubricating Eye Drops", ProductCategory.EYEDROP, Decimal("3500")),
            ("DRP-002", "Allergy Relief Drops", ProductCategory.EYEDROP, Decimal("4200")),
            ("ACC-001", "Hard Shell Case", ProductCategory.ACCESSORIES, Decimal("2500")),
            ("ACC-002", "Microfiber Cloth Pack", ProductCategory.ACCESSORIES, Decimal("1000")),
            ("ACC-003", "Lens Cleaning Spray", ProductCategory.ACCESSORIES, Decimal("1800")),
            ("ACC-004", "Sports Strap", ProductCategory.ACCESSORIES, Decimal("1500")),
        ]
        for code, name, category, price in catalog:
            product, _ = Product.objects.get_or_create(
                code=code,
                defaults={
                    "name": name,
                    "category": category,
                    "price": price,
                    "available_quantity": random.randint(0, 40),
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(
        self, products: list[Product], admin: AdminPrincipal, count: int
    ) -> int:
        self.stdout.write("Creating orders...")
        in_stock = [p for p in products if p.in_stock]
        if not in_stock:
            self.stdout.write(self.style.WARNING("Skipping orders (no stock)."))
            return 0

        service = OrderService(OrderDjangoRepository(), ProductDjangoRepository())
        customers = [
            ("Adaeze Okafor", "+2348031234567", "adaeze@example.com"),
            ("Tunde Bakare", "+2348059876543", ""),
            ("Ngozi Eze", "+2348025550101", "ngozi@example.com"),
            ("Ibrahim Musa", "+2348091112233", ""),
        ]
        created = 0
        for _ in range(count):
            full_name, phone, email = random.choice(customers)
            picked = random.sample(in_stock, k=min(random.randint(1, 3), len(in_stock)))
            dto = CreateOrderDTO(
                customer=CustomerInfoDTO(full_name=full_name, phone=phone, email=email),
                items=[
                    CreateOrderItemDTO(product_id=p.id, quantity=random.randint(1, 2))
                    for p in picked
                ],
                shipping_fee=Decimal(random.choice([0, 1500, 3000])),
            )
            try:
                order = service.create_order(dto)
                if random.random() < 0.5:
                    service.mark_paid(str(order.id), admin)
            except DomainError as exc:
                self.stdout.write(self.style.WARNING(f"Skipped order: {exc}"))
                continue
            created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created

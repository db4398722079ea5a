import django_filters

from modules.products.models import Product, ProductCategory


class ProductFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    code = django_filters.CharFilter(field_name="code", lookup_expr="iexact")
    category = django_filters.ChoiceFilter(choices=ProductCategory.choices)
    in_stock = django_filters.BooleanFilter(field_name="in_stock")
    min_price = django_filters.NumberFilter(field_name="price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="price", lookup_expr="lte")

    class Meta:
        model = Product
        fields = ["name", "code", "category", "in_stock", "min_price", "max_price"]

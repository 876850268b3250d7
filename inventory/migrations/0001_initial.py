import decimal
import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(db_index=True, help_text='Product name for display and search', max_length=200)),
                ('sku', models.CharField(help_text='Stock keeping unit, unique per owner', max_length=64)),
                ('category', models.CharField(blank=True, db_index=True, default='', help_text='Free-form category label', max_length=100)),
                ('price', models.DecimalField(decimal_places=2, help_text='Unit price (must not be negative)', max_digits=12, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0'))])),
                ('stock', models.PositiveIntegerField(default=0, help_text='Units currently on hand')),
                ('min_stock', models.PositiveIntegerField(default=0, help_text='At or below this many units the product is Low Stock')),
                ('status', models.CharField(choices=[('In Stock', 'In Stock'), ('Low Stock', 'Low Stock'), ('Out of Stock', 'Out of Stock')], db_index=True, default='Out of Stock', editable=False, help_text='Derived from stock and min_stock', max_length=20)),
                ('description', models.TextField(blank=True, default='')),
                ('supplier', models.CharField(blank=True, default='', max_length=200)),
                ('location', models.CharField(blank=True, default='', max_length=200)),
                ('last_restocked', models.DateField(blank=True, help_text='Date of the most recent incoming adjustment', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(help_text='User who owns this product', on_delete=django.db.models.deletion.CASCADE, related_name='products', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner', 'status'], name='product_owner_status_idx'),
                    models.Index(fields=['owner', 'category'], name='product_owner_category_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('owner', 'sku'), name='unique_owner_sku'),
                ],
            },
        ),
    ]

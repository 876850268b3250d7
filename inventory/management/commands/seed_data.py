"""
Management command to seed the database with a demo account.

Generates:
- A demo user (default: demo / demo1234)
- 40 products across a handful of categories
- A year of stock adjustment history, consistent with final stock levels

Usage:
    python manage.py seed_data
    python manage.py seed_data --clear  # Remove the demo user's data first
"""
import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from accounts.models import User
from adjustments.models import StockAdjustment
from inventory.models import Product, derive_status


PRODUCT_TEMPLATES = {
    'Electronics': [
        'Wireless Headphones', 'Bluetooth Speaker', 'USB-C Cable',
        'Power Bank', 'Smart Watch', 'Webcam HD', 'Gaming Mouse',
        'Mechanical Keyboard', 'Monitor 27"'
    ],
    'Accessories': [
        'Laptop Sleeve', 'Phone Case', 'Cable Organizer', 'Screen Protector',
        'Mouse Pad', 'Charging Dock', 'Stylus Pen'
    ],
    'Furniture': [
        'Standing Desk', 'Office Chair', 'Bookshelf', 'Filing Cabinet',
        'Monitor Arm', 'Desk Lamp', 'Footrest'
    ],
    'Stationery': [
        'Notebook A5', 'Gel Pens', 'Sticky Notes', 'Stapler',
        'Whiteboard Markers', 'Paper Clips', 'Desk Organizer'
    ],
}

SUPPLIERS = ['Acme Corp', 'Globex', 'Initech', 'Umbrella Supply', 'Stark Wholesale']
LOCATIONS = ['Warehouse A', 'Warehouse B', 'Shelf 1', 'Shelf 2', 'Back Room']
INCOMING_REASONS = ['Supplier delivery', 'Customer return', 'Stock count correction']
OUTGOING_REASONS = ['Customer order', 'Damaged', 'Internal use', None]


class Command(BaseCommand):
    help = 'Seed the database with a demo user, products and stock adjustment history'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help="Delete the demo user's products and adjustments before seeding",
        )
        parser.add_argument(
            '--username',
            default='demo',
            help='Demo username (default: demo)',
        )
        parser.add_argument(
            '--password',
            default='demo1234',
            help='Demo password (default: demo1234)',
        )
        parser.add_argument(
            '--products',
            type=int,
            default=40,
            help='Number of products to create (default: 40)',
        )
        parser.add_argument(
            '--adjustments',
            type=int,
            default=300,
            help='Number of stock adjustments to create (default: 300)',
        )

    def handle(self, *args, **options):
        user = self._get_user(options['username'], options['password'])

        if options['clear']:
            self.stdout.write('Clearing existing data...')
            Product.objects.filter(owner=user).delete()
            self.stdout.write(self.style.WARNING(f"Cleared data for {user.username}."))

        self.stdout.write('Starting database seeding...')

        with transaction.atomic():
            products = self._create_products(user, options['products'])
            self._create_history(user, products, options['adjustments'])

        self.stdout.write(self.style.SUCCESS('Database seeding completed successfully!'))

    def _get_user(self, username, password):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={'email': f'{username}@example.com'},
        )
        if created:
            user.set_password(password)
            user.save(update_fields=['password'])
            self.stdout.write(f'  Created user: {username}')
        return user

    def _create_products(self, user, count):
        """Create products with an initial stock level."""
        existing_skus = set(
            Product.objects.filter(owner=user).values_list('sku', flat=True)
        )
        products = []

        for i in range(count):
            category = random.choice(list(PRODUCT_TEMPLATES))
            name = random.choice(PRODUCT_TEMPLATES[category])
            sku = f"{category[:3].upper()}-{i + 1:04d}"
            if sku in existing_skus:
                continue

            stock = random.randint(20, 200)
            min_stock = random.randint(5, 20)
            products.append(Product(
                owner=user,
                name=name,
                sku=sku,
                category=category,
                price=Decimal(str(round(random.uniform(2, 400), 2))),
                stock=stock,
                min_stock=min_stock,
                # bulk_create skips save(), so derive status here
                status=derive_status(stock, min_stock),
                description=f"{name} for everyday use.",
                supplier=random.choice(SUPPLIERS),
                location=random.choice(LOCATIONS),
            ))

        Product.objects.bulk_create(products)
        self.stdout.write(self.style.SUCCESS(f'Created {len(products)} products'))
        return products

    def _create_history(self, user, products, count):
        """
        Replay random movements over the last year.

        Outgoing movements never exceed the simulated stock, so the final
        product stock equals the initial stock plus the ledger.
        """
        if not products:
            return

        now = timezone.now()
        timestamps = sorted(
            now - timedelta(minutes=random.randint(0, 365 * 24 * 60))
            for _ in range(count)
        )
        created = 0

        for timestamp in timestamps:
            product = random.choice(products)
            if product.stock > 0 and random.random() < 0.6:
                adjustment_type = StockAdjustment.Type.OUTGOING
                units = random.randint(1, max(1, product.stock // 3))
                reason = random.choice(OUTGOING_REASONS)
                product.stock -= units
            else:
                adjustment_type = StockAdjustment.Type.INCOMING
                units = random.randint(5, 60)
                reason = random.choice(INCOMING_REASONS)
                product.stock += units
                product.last_restocked = timestamp.date()

            adjustment = StockAdjustment.objects.create(
                product=product,
                user=user,
                type=adjustment_type,
                units=units,
                reason=reason,
            )
            # auto_now_add ignores explicit values; backdate afterwards
            StockAdjustment.objects.filter(pk=adjustment.pk).update(created_at=timestamp)
            created += 1

        for product in products:
            product.save(update_fields=['stock', 'status', 'last_restocked'])

        self.stdout.write(self.style.SUCCESS(f'Created {created} stock adjustments'))

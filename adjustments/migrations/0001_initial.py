import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('inventory', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StockAdjustment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('type', models.CharField(choices=[('incoming', 'Incoming'), ('outgoing', 'Outgoing')], db_index=True, help_text='Direction of the movement', max_length=10)),
                ('units', models.PositiveIntegerField(help_text='Number of units moved', validators=[django.core.validators.MinValueValidator(1)])),
                ('reason', models.TextField(blank=True, help_text='Optional free-text reason', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('product', models.ForeignKey(help_text='Adjusted product', on_delete=django.db.models.deletion.CASCADE, related_name='adjustments', to='inventory.product')),
                ('user', models.ForeignKey(help_text='User who made the adjustment', on_delete=django.db.models.deletion.CASCADE, related_name='stock_adjustments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Stock Adjustment',
                'verbose_name_plural': 'Stock Adjustments',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'created_at'], name='adjustment_user_created_idx'),
                    models.Index(fields=['user', 'type'], name='adjustment_user_type_idx'),
                ],
            },
        ),
    ]

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


STATUS_CHOICES = [('pending', 'Pending'), ('quoted', 'Quoted'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('completed', 'Completed')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CustomDesignRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('full_name', models.CharField(max_length=200)),
                ('email', models.EmailField(max_length=254)),
                ('phone', models.CharField(blank=True, max_length=30)),
                ('country', models.CharField(blank=True, max_length=100)),
                ('metal_type', models.CharField(max_length=100)),
                ('primary_stones', models.JSONField(blank=True, default=list)),
                ('notes', models.TextField(blank=True)),
                ('image_url', models.CharField(blank=True, max_length=500)),
                ('image_urls', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=STATUS_CHOICES, db_index=True, default='pending', max_length=20)),
                ('quoted_price', models.PositiveIntegerField(blank=True, help_text='Quoted price in INR', null=True)),
                ('cad_image_url', models.CharField(blank=True, max_length=500)),
                ('consultation_fee_paid', models.BooleanField(default=False)),
                ('iterations_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='design_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'design_requests',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='CustomizationRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('email', models.EmailField(max_length=254)),
                ('phone', models.CharField(blank=True, max_length=30)),
                ('customization_details', models.TextField()),
                ('preferred_metal', models.CharField(blank=True, max_length=100)),
                ('preferred_stones', models.JSONField(blank=True, default=list)),
                ('preferred_budget', models.CharField(blank=True, max_length=100)),
                ('timeline', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(choices=STATUS_CHOICES, db_index=True, default='pending', max_length=20)),
                ('quoted_price', models.PositiveIntegerField(blank=True, help_text='Quoted price in INR', null=True)),
                ('cad_image_url', models.CharField(blank=True, max_length=500)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='customization_requests', to='catalog.product')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='customization_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'customization_requests',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='DesignRequestComment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('content', models.TextField(blank=True)),
                ('image_url', models.CharField(blank=True, max_length=500)),
                ('is_admin', models.BooleanField(default=False)),
                ('created_by', models.CharField(max_length=150)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='designs.customdesignrequest')),
            ],
            options={
                'db_table': 'design_request_comments',
                'ordering': ['created_at', 'id'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='CustomizationComment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('content', models.TextField(blank=True)),
                ('image_url', models.CharField(blank=True, max_length=500)),
                ('is_admin', models.BooleanField(default=False)),
                ('created_by', models.CharField(max_length=150)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='designs.customizationrequest')),
            ],
            options={
                'db_table': 'customization_comments',
                'ordering': ['created_at', 'id'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='DesignPayment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.PositiveIntegerField(help_text='Amount in INR')),
                ('payment_type', models.CharField(choices=[('consultation_fee', 'Consultation Fee'), ('deposit', 'Deposit'), ('final_payment', 'Final Payment')], max_length=20)),
                ('payment_method', models.CharField(blank=True, max_length=50)),
                ('transaction_id', models.CharField(blank=True, max_length=200)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed')], default='pending', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('design_request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='designs.customdesignrequest')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='design_payments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'design_payments',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]

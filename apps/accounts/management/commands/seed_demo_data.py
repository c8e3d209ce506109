"""
Management command to fill an empty database with demo data.

Usage:
    python manage.py seed_demo_data [--clear]

This creates:
- one account per role (admin, chairman, secretary, accountant, resident)
- 6 plots on two lines with their owners
- default payment requisites
- membership accruals for the last two months and a few payments
- a couple of appeals and a published announcement

Running it twice does not duplicate anything.
"""

from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User, Role
from apps.appeals.models import Appeal
from apps.appeals.services import create_appeal
from apps.billing.models import Accrual, Allocation, Payment, PenaltyAccrual, AccrualCategory
from apps.billing.services import (
    current_period,
    shift_period,
    ensure_default_requisites,
    generate_accruals,
    create_payment,
    auto_allocate,
)
from apps.notifications.models import Announcement, NotificationDraft, Audience
from apps.notifications.services import create_announcement
from apps.registry.models import Plot, Person, PlotOwnership, PersonStatus, InviteCode
from apps.registry.services import create_invite_code

DEMO_PASSWORD = 'password123'

ACCOUNTS = [
    ('admin@example.com', 'Администратор', Role.ADMIN),
    ('chairman@example.com', 'Иванов Иван Иванович', Role.CHAIRMAN),
    ('secretary@example.com', 'Кузнецова Ольга Сергеевна', Role.SECRETARY),
    ('accountant@example.com', 'Смирнова Елена Викторовна', Role.ACCOUNTANT),
    ('resident@example.com', 'Сидорова Анна Петровна', Role.RESIDENT),
]

# (line, plot number, owner, phone, email)
PLOTS = [
    ('1', '1', 'Сидорова Анна Петровна', '+79123456789', 'resident@example.com'),
    ('1', '2', 'Петров Пётр Ильич', '+79005554433', 'petrov@example.com'),
    ('1', '3', 'Орлов Олег Андреевич', '+79001112233', ''),
    ('2', '14', 'Ёлкина Мария Ивановна', '', 'elkina@example.com'),
    ('2', '15', 'Васильев Николай Павлович', '+79217778899', 'vasiliev@example.com'),
    ('2', '16', 'Фёдорова Татьяна Юрьевна', '+79650001122', ''),
]


class Command(BaseCommand):
    help = 'Create demo data for a fresh portal installation'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Remove existing portal data before seeding',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Creating demo data...')

        users = self.create_users()
        self.create_registry(users)
        ensure_default_requisites()
        self.create_billing(users)
        self.create_appeals(users)
        self.create_announcements(users)

        self.stdout.write(self.style.SUCCESS('Demo data created successfully!'))
        self.stdout.write('')
        self.stdout.write('Demo accounts (password: %s):' % DEMO_PASSWORD)
        for email, _, role in ACCOUNTS:
            self.stdout.write(f'  {email} ({role.label})')

    def clear_data(self):
        """Delete everything the command creates."""
        NotificationDraft.objects.all().delete()
        Announcement.objects.all().delete()
        Appeal.objects.all().delete()
        PenaltyAccrual.objects.all().delete()
        Allocation.objects.all().delete()
        Payment.objects.all().delete()
        Accrual.objects.all().delete()
        InviteCode.objects.all().delete()
        PlotOwnership.objects.all().delete()
        Person.objects.all().delete()
        Plot.objects.all().delete()
        User.objects.filter(email__in=[email for email, _, _ in ACCOUNTS]).delete()

    def create_users(self):
        self.stdout.write('  Creating users...')

        users = {}
        for email, full_name, role in ACCOUNTS:
            user, created = User.objects.get_or_create(
                email=email,
                defaults={
                    'full_name': full_name,
                    'role': role,
                    'is_staff': role == Role.ADMIN,
                    'is_superuser': role == Role.ADMIN,
                }
            )
            if created:
                user.set_password(DEMO_PASSWORD)
                user.save()
            users[role] = user
        return users

    def create_registry(self, users):
        self.stdout.write('  Creating plots and owners...')

        for street, number, full_name, phone, email in PLOTS:
            plot, _ = Plot.objects.get_or_create(street=street, number=number)
            person, created = Person.objects.get_or_create(
                full_name=full_name,
                defaults={
                    'phone': phone,
                    'email': email,
                    'status': PersonStatus.VERIFIED if email else PersonStatus.DRAFT,
                }
            )
            PlotOwnership.objects.get_or_create(plot=plot, person=person, defaults={'is_primary': True})

            if email == users[Role.RESIDENT].email:
                if person.user_id is None:
                    person.user = users[Role.RESIDENT]
                    person.save(update_fields=['user'])
            elif created:
                _, code = create_invite_code(person_id=person.id)
                self.stdout.write(f'    invite code for {full_name}: {code}')

    def create_billing(self, users):
        self.stdout.write('  Creating accruals and payments...')
        accountant = users[Role.ACCOUNTANT]

        this_month = current_period()
        for period in (shift_period(this_month, -1), this_month):
            generate_accruals(period=period, category=AccrualCategory.MEMBERSHIP, user=accountant)

        if Payment.objects.exists():
            return

        today = timezone.localdate()
        for street, number, amount in (('1', '1', '1500.00'), ('2', '15', '3000.00'), ('1', '2', '700.00')):
            plot = Plot.objects.get(street=street, number=number)
            create_payment(
                amount=Decimal(amount),
                paid_at=today - timedelta(days=3),
                user=accountant,
                plot_id=plot.id,
                payer_name=plot.get_primary_owner().full_name,
                purpose=f'Членский взнос, участок {number}',
            )
        auto_allocate(user=accountant)

    def create_appeals(self, users):
        self.stdout.write('  Creating appeals...')
        if Appeal.objects.exists():
            return

        resident = users[Role.RESIDENT]
        create_appeal(
            author=resident,
            title='Не приходит пароль',
            body='Не могу войти в личный кабинет, код подтверждения не приходит.',
        )
        create_appeal(
            author=resident,
            title='Показания счётчика',
            body='Прошу проверить начисление за электроэнергию, показания передавала вовремя.',
        )

    def create_announcements(self, users):
        self.stdout.write('  Creating announcements...')
        if Announcement.objects.exists():
            return

        create_announcement(
            author=users[Role.SECRETARY],
            title='Общее собрание членов СНТ',
            body='Собрание состоится в субботу в 11:00 у правления. Повестка в личном кабинете.',
            audience=Audience.ALL,
            publish=True,
        )

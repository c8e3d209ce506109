from io import StringIO

import pytest
from django.core.management import call_command

from apps.accounts.models import User, Role
from apps.appeals.models import Appeal
from apps.billing.models import Accrual, Payment, PaymentRequisites
from apps.notifications.models import Announcement
from apps.registry.models import Plot, Person


def _seed(*args):
    out = StringIO()
    call_command('seed_demo_data', *args, stdout=out)
    return out.getvalue()


@pytest.mark.django_db
class TestSeedDemoData:

    def test_creates_demo_portal(self):
        output = _seed()

        assert 'Demo data created successfully!' in output
        assert User.objects.filter(role=Role.ACCOUNTANT).count() == 1
        assert Plot.objects.count() == 6
        assert Accrual.objects.count() == 12
        assert Payment.objects.count() == 3
        assert Appeal.objects.count() == 2
        assert Announcement.objects.filter(status='published').count() == 1
        assert PaymentRequisites.objects.exists()

    def test_resident_is_linked_to_plot(self):
        _seed()

        resident = User.objects.get(email='resident@example.com')
        assert Person.objects.get(user=resident).plots.get().number == '1'
        assert resident.check_password('password123')

    def test_second_run_does_not_duplicate(self):
        _seed()
        _seed()

        assert Plot.objects.count() == 6
        assert Accrual.objects.count() == 12
        assert Payment.objects.count() == 3
        assert Appeal.objects.count() == 2

    def test_clear(self):
        _seed()
        Plot.objects.create(street='9', number='99')

        _seed('--clear')

        assert not Plot.objects.filter(street='9').exists()
        assert Plot.objects.count() == 6

import io
from datetime import date, datetime
from decimal import Decimal

import pytest
from openpyxl import Workbook

from apps.audit.models import AuditLog, AuditAction
from apps.billing.models import (
    Accrual,
    AccrualCategory,
    AccrualStatus,
    Allocation,
    AllocationStatus,
    BillingPeriod,
    MatchStatus,
    Payment,
    PenaltyAccrual,
    PenaltyStatus,
)
from apps.billing.services import (
    parse_period,
    shift_period,
    iter_periods,
    close_period,
    reopen_period,
    ensure_period_open,
    compute_amount,
    preview_accruals,
    generate_accruals,
    list_accruals,
    create_payment,
    list_payments,
    auto_allocate,
    manual_allocate,
    unapply_allocation,
    unapply_payment_allocations,
    get_summary,
    list_debtors,
    list_balances,
    list_unallocated,
    list_overpayments,
    manual_match,
    run_auto_match,
    bulk_update_match,
    parse_statement,
    match_payment_to_plot,
    import_statement,
    calculate_penalty,
    preview_penalty,
    apply_penalties,
    recalc_penalties,
    void_penalty,
    unvoid_penalty,
    freeze_penalty,
    unfreeze_penalty,
    get_active_requisites,
    update_requisites,
    get_cabinet,
    PaymentQRGenerator,
    # Exceptions
    InvalidPeriodError,
    PeriodClosedError,
    ReasonRequiredError,
    AllocationError,
    MatchUpdateError,
    PenaltyStateError,
    StatementParseError,
    RequisitesNotConfiguredError,
    BillingServiceError,
)


STATEMENT_CSV = (
    '\ufeffДата;Сумма;Плательщик;Назначение платежа;Номер\n'
    '05.06.2024;1 500,00;Сидорова Анна Петровна;Членский взнос участок 14;A1\n'
    '06.06.2024;-300,00;СНТ;Комиссия банка;A2\n'
    '07.06.2024;500;Неизвестный;Взнос;A3\n'
    'xx;100;;;A4\n'
).encode('utf-8')


def _accrual(plot, period, amount, category=AccrualCategory.MEMBERSHIP):
    return Accrual.objects.create(plot=plot, period=period, category=category, amount=Decimal(amount))


def _payment(plot, amount, paid_at=date(2024, 6, 1), **fields):
    return Payment.objects.create(plot=plot, amount=Decimal(amount), paid_at=paid_at, **fields)


class TestPeriodHelpers:

    def test_parse_period_leap_february(self):
        assert parse_period('2024-02') == (date(2024, 2, 1), date(2024, 2, 29))

    @pytest.mark.parametrize('value', ['2024-13', '24-01', '2024/01', ''])
    def test_parse_period_rejects(self, value):
        with pytest.raises(InvalidPeriodError):
            parse_period(value)

    def test_shift_and_iterate(self):
        assert shift_period('2024-01', -1) == '2023-12'
        assert list(iter_periods('2023-11', '2024-02')) == ['2023-11', '2023-12', '2024-01', '2024-02']


@pytest.mark.django_db
class TestPeriodClosing:

    def test_close_stores_snapshot(self, accrual, payment, billing_accountant):
        Allocation.objects.create(payment=payment, accrual=accrual, amount=Decimal('400.00'))

        billing_period = close_period(period='2024-05', user=billing_accountant)

        assert billing_period.is_closed
        assert Decimal(billing_period.snapshot['accrued_total']) == Decimal('1500')
        assert Decimal(billing_period.snapshot['paid_total']) == Decimal('400')
        assert Decimal(billing_period.snapshot['debt_total']) == Decimal('1100')
        assert billing_period.snapshot['debtors_count'] == 1
        assert AuditLog.objects.filter(action=AuditAction.PERIOD_CLOSE).count() == 1

    def test_close_is_idempotent(self, billing_accountant):
        close_period(period='2024-05', user=billing_accountant)
        close_period(period='2024-05', user=billing_accountant)

        assert BillingPeriod.objects.count() == 1
        assert AuditLog.objects.filter(action=AuditAction.PERIOD_CLOSE).count() == 1

    def test_closed_period_requires_reason(self, billing_accountant):
        close_period(period='2024-05', user=billing_accountant)

        with pytest.raises(PeriodClosedError):
            ensure_period_open(period='2024-05')

        ensure_period_open(period='2024-05', reason='исправление ошибки', actor=billing_accountant)
        entry = AuditLog.objects.get(action=AuditAction.PERIOD_CLOSED_CHANGE)
        assert entry.details['reason'] == 'исправление ошибки'

    def test_reopen_requires_reason(self, billing_admin):
        close_period(period='2024-05', user=billing_admin)

        with pytest.raises(ReasonRequiredError):
            reopen_period(period='2024-05', user=billing_admin, reason='  ')

        billing_period = reopen_period(period='2024-05', user=billing_admin, reason='сверка')
        assert not billing_period.is_closed
        assert billing_period.snapshot


@pytest.mark.django_db
class TestAccruals:

    def test_compute_amount(self, settings):
        settings.SNT_MEMBERSHIP_FEE = Decimal('1500.00')
        settings.SNT_ELECTRICITY_DEFAULT_KWH = 100

        assert compute_amount(category=AccrualCategory.MEMBERSHIP) == Decimal('1500.00')
        assert compute_amount(category=AccrualCategory.ELECTRICITY, tariff=Decimal('6')) == Decimal('600.00')
        assert compute_amount(category=AccrualCategory.TARGET) == Decimal('0.00')
        assert compute_amount(category=AccrualCategory.TARGET, fixed_amount=Decimal('250')) == Decimal('250.00')

    def test_preview_flags_existing(self, accrual, plot, other_plot):
        rows = preview_accruals(period='2024-05', category=AccrualCategory.MEMBERSHIP, tariff=Decimal('1500'))

        flags = {row['plot_id']: row['exists'] for row in rows}
        assert flags == {plot.id: True, other_plot.id: False}

    def test_preview_by_plot_query(self, plot, other_plot):
        rows = preview_accruals(period='2024-05', category=AccrualCategory.MEMBERSHIP, plot_query='5 3')

        assert [row['plot_id'] for row in rows] == [other_plot.id]

    def test_generate_skips_duplicates(self, accrual, other_plot, billing_accountant):
        result = generate_accruals(
            period='2024-05',
            category=AccrualCategory.MEMBERSHIP,
            tariff=Decimal('1500'),
            user=billing_accountant,
        )

        assert result == {
            'created_count': 1,
            'skipped_count': 1,
            'duplicates': ['Линия 2, участок 14'],
        }
        assert Accrual.objects.get(plot=other_plot).amount == Decimal('1500.00')

    def test_generate_in_closed_period(self, plot, billing_accountant):
        close_period(period='2024-05', user=billing_accountant)

        with pytest.raises(PeriodClosedError):
            generate_accruals(period='2024-05', category=AccrualCategory.TARGET, user=billing_accountant)

        result = generate_accruals(
            period='2024-05',
            category=AccrualCategory.TARGET,
            fixed_amount=Decimal('300'),
            user=billing_accountant,
            reason='дорога',
        )
        assert result['created_count'] == 1

    def test_accrual_status(self, accrual, payment):
        assert accrual.status == AccrualStatus.OPEN

        Allocation.objects.create(payment=payment, accrual=accrual, amount=Decimal('1000.00'))
        assert accrual.status == AccrualStatus.PARTIALLY_PAID
        assert accrual.remaining == Decimal('500.00')

    def test_list_accruals_order(self, plot, other_plot):
        june = _accrual(plot, '2024-06', '1500')
        may_other = _accrual(other_plot, '2024-05', '1500')
        may_electricity = _accrual(plot, '2024-05', '550', category=AccrualCategory.ELECTRICITY)
        may = _accrual(plot, '2024-05', '1500')

        accruals = list_accruals()

        assert accruals.ordered
        assert list(accruals) == [may_electricity, may, may_other, june]


@pytest.mark.django_db
class TestPayments:

    def test_manual_payment_with_plot_is_matched(self, plot, billing_accountant):
        payment = create_payment(
            amount=Decimal('700'),
            paid_at=date(2024, 6, 10),
            plot_id=plot.id,
            user=billing_accountant,
        )

        assert payment.match_status == MatchStatus.MATCHED
        assert payment.match_method == 'manual'

    def test_non_positive_amount(self, billing_accountant):
        with pytest.raises(BillingServiceError):
            create_payment(amount=Decimal('0'), paid_at=date(2024, 6, 10), user=billing_accountant)

    def test_list_payments_newest_first(self, plot):
        older = _payment(plot, '100', paid_at=date(2024, 5, 2))
        newest = _payment(plot, '200', paid_at=date(2024, 6, 20))
        middle = _payment(plot, '300', paid_at=date(2024, 6, 1))

        payments = list_payments()

        assert payments.ordered
        assert list(payments) == [newest, middle, older]
        assert payments[0].allocated_total == Decimal('0')


@pytest.mark.django_db
class TestAllocation:

    def test_auto_allocate_fifo(self, plot, billing_accountant):
        april = _accrual(plot, '2024-04', '1000')
        may = _accrual(plot, '2024-05', '1500')
        payment = _payment(plot, '2000')

        result = auto_allocate(user=billing_accountant)

        assert result == {'created_count': 2, 'periods': ['2024-04', '2024-05']}
        assert april.remaining == Decimal('0')
        assert may.remaining == Decimal('500')
        assert payment.allocation_status == AllocationStatus.ALLOCATED

    def test_auto_allocate_is_repeatable(self, accrual, payment):
        auto_allocate()
        result = auto_allocate()

        assert result['created_count'] == 0
        assert Allocation.objects.count() == 1

    def test_auto_allocate_skips_unmatched(self, accrual):
        _payment(None, '500')

        assert auto_allocate()['created_count'] == 0

    def test_manual_allocate_over_remainder(self, accrual, payment, billing_accountant):
        with pytest.raises(AllocationError, match='Сумма превышает остаток'):
            manual_allocate(
                payment_id=payment.id,
                accrual_id=accrual.id,
                amount=Decimal('1200'),
                user=billing_accountant,
            )

    def test_manual_allocate_audited(self, accrual, payment, billing_accountant):
        allocation = manual_allocate(
            payment_id=payment.id,
            accrual_id=accrual.id,
            amount=Decimal('300'),
            user=billing_accountant,
        )

        entry = AuditLog.objects.get(action=AuditAction.ALLOCATION_MANUAL)
        assert entry.target_id == str(allocation.id)
        assert entry.details['amount'] == '300'

    def test_unapply(self, accrual, payment, billing_accountant):
        auto_allocate()
        allocation = Allocation.objects.get()

        unapply_allocation(allocation_id=allocation.id, user=billing_accountant)
        assert not Allocation.objects.exists()

        auto_allocate()
        assert unapply_payment_allocations(payment_id=payment.id, user=billing_accountant) == 1
        assert AuditLog.objects.filter(action=AuditAction.ALLOCATION_UNAPPLY).count() == 2


@pytest.mark.django_db
class TestReconciliation:

    def test_summary(self, accrual, payment, other_plot):
        _accrual(other_plot, '2024-05', '1500')
        auto_allocate()

        summary = get_summary(period='2024-05')

        assert summary['accrued'] == Decimal('3000')
        assert summary['paid'] == Decimal('1000')
        assert summary['debt'] == Decimal('2000')
        assert summary['debtors_count'] == 2
        # the payment is dated June
        assert summary['payments_count'] == 0

    def test_debtors_sorted_by_debt(self, accrual, payment, plot, other_plot):
        _accrual(other_plot, '2024-05', '1500')
        auto_allocate()

        rows = list_debtors(period='2024-05')

        assert [row['plot_id'] for row in rows] == [other_plot.id, plot.id]
        assert rows[1]['debt'] == Decimal('500')
        assert list_debtors(period='2024-05', min_debt=Decimal('1000'))[0]['plot_id'] == other_plot.id

    def test_balances_show_credit(self, plot, other_plot, accrual):
        _payment(plot, '2000')

        rows = {row['plot_id']: row for row in list_balances()}

        assert rows[plot.id]['credit'] == Decimal('500')
        assert rows[plot.id]['balance'] == Decimal('500')
        assert rows[other_plot.id]['balance'] == Decimal('0')

    def test_unallocated_and_overpayments(self, accrual, payment, plot):
        big = _payment(plot, '5000', paid_at=date(2024, 6, 5))

        assert set(list_unallocated()) == {payment, big}

        auto_allocate()
        assert list(list_unallocated()) == []
        assert list(list_overpayments()) == [big]

    def test_manual_match(self, plot, billing_accountant):
        payment = _payment(None, '100')

        manual_match(payment_id=payment.id, plot_id=plot.id, user=billing_accountant)

        payment.refresh_from_db()
        assert payment.plot == plot
        assert payment.match_status == MatchStatus.MATCHED
        assert payment.match_confidence == Decimal('1.00')

    def test_manual_match_allocated_payment(self, accrual, payment, other_plot, billing_accountant):
        auto_allocate()

        with pytest.raises(MatchUpdateError):
            manual_match(payment_id=payment.id, plot_id=other_plot.id, user=billing_accountant)

    def test_run_auto_match(self, plot, owner):
        found = _payment(None, '100', purpose='Взнос уч. 14')
        unknown = _payment(None, '100', purpose='Взнос', payer_name='Кто-то')

        result = run_auto_match()

        assert result == {'checked': 2, 'matched': 1, 'needs_review': 1}
        found.refresh_from_db()
        unknown.refresh_from_db()
        assert found.plot == plot
        assert unknown.match_status == MatchStatus.NEEDS_REVIEW

    def test_bulk_update_match(self, accrual, payment, billing_accountant):
        loose = _payment(None, '100')
        auto_allocate()

        assert bulk_update_match(
            payment_ids=[payment.id, loose.id], action='confirm', user=billing_accountant
        ) == {'updated': 1, 'skipped': 1}
        assert bulk_update_match(
            payment_ids=[payment.id, loose.id], action='unmatch', user=billing_accountant
        ) == {'updated': 1, 'skipped': 1}
        assert bulk_update_match(
            payment_ids=[loose.id], action='review', user=billing_accountant
        ) == {'updated': 1, 'skipped': 0}

        loose.refresh_from_db()
        assert loose.match_status == MatchStatus.NEEDS_REVIEW

    def test_bulk_update_unknown_action(self, billing_accountant):
        with pytest.raises(MatchUpdateError):
            bulk_update_match(payment_ids=[], action='delete', user=billing_accountant)


@pytest.mark.django_db
class TestStatementImport:

    def test_parse_csv(self):
        rows, errors = parse_statement(STATEMENT_CSV, 'statement.csv')

        assert len(rows) == 3
        assert rows[0]['date'] == date(2024, 6, 5)
        assert rows[0]['amount'] == Decimal('1500.00')
        assert rows[0]['bank_ref'] == 'A1'
        assert rows[1]['direction'] == 'out'
        assert rows[1]['amount'] == Decimal('300.00')
        assert errors == [{'row': 5, 'error': 'Неверная дата'}]

    def test_parse_credit_debit_columns(self):
        content = 'date,payer,credit,debit\n2024-06-01,Иванов,"1 200,50",\n2024-06-02,Банк,,99\n'

        rows, errors = parse_statement(content.encode('cp1251'), 'statement.csv')

        assert errors == []
        assert [(row['direction'], row['amount']) for row in rows] == [
            ('in', Decimal('1200.50')),
            ('out', Decimal('99')),
        ]

    def test_parse_operation_column(self):
        content = (
            'Дата;Сумма;Операция;Плательщик;Назначение\n'
            '05.06.2024;700;Списание;СНТ;Вывоз мусора\n'
            '06.06.2024;1500;Зачисление;Сидорова;участок 14\n'
        )

        rows, errors = parse_statement(content.encode('utf-8'), 'statement.csv')

        assert errors == []
        assert [row['direction'] for row in rows] == ['out', 'in']
        assert rows[0]['purpose'] == 'Вывоз мусора'

    def test_parse_income_expense_text_column(self):
        content = (
            'Дата;Сумма;Приход/Расход;Назначение\n'
            '05.06.2024;250;Расход;Канцтовары\n'
            '06.06.2024;900;Приход;уч 14\n'
        )

        rows, errors = parse_statement(content.encode('utf-8'), 'statement.csv')

        assert errors == []
        assert [(row['direction'], row['amount']) for row in rows] == [
            ('out', Decimal('250.00')),
            ('in', Decimal('900.00')),
        ]

    def test_amount_rounding_to_zero_is_error(self):
        content = 'Дата;Сумма\n05.06.2024;0,004\n06.06.2024;0,006\n'

        rows, errors = parse_statement(content.encode('utf-8'), 'statement.csv')

        assert errors == [{'row': 2, 'error': 'Неверная сумма'}]
        assert [row['amount'] for row in rows] == [Decimal('0.01')]

    def test_import_skips_outgoing_operations(self, billing_accountant):
        content = (
            'Дата;Сумма;Операция;Плательщик;Назначение\n'
            '05.06.2024;700;Списание;СНТ;Вывоз мусора\n'
            '06.06.2024;1500;Зачисление;Петров;Взнос\n'
        ).encode('utf-8')

        statement = import_statement(content=content, file_name='june.csv', user=billing_accountant)

        assert statement.totals['imported'] == 1
        assert statement.totals['skipped_out'] == 1
        assert Payment.objects.get().amount == Decimal('1500.00')

    def test_parse_xlsx(self):
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(['Дата операции', 'Сумма', 'Назначение'])
        sheet.append([datetime(2024, 6, 5, 12, 30), 1500, 'уч 14'])
        buffer = io.BytesIO()
        workbook.save(buffer)

        rows, errors = parse_statement(buffer.getvalue(), 'statement.xlsx')

        assert errors == []
        assert rows[0]['date'] == date(2024, 6, 5)
        assert rows[0]['amount'] == Decimal('1500')
        assert rows[0]['purpose'] == 'уч 14'

    def test_missing_columns(self):
        with pytest.raises(StatementParseError, match='дата/сумма'):
            parse_statement('Плательщик;Назначение\nИванов;взнос\n'.encode('utf-8'))

    def test_header_only(self):
        with pytest.raises(StatementParseError, match='заголовок'):
            parse_statement('Дата;Сумма\n'.encode('utf-8'))

    def test_match_by_plot_number(self, plot, other_plot):
        result = match_payment_to_plot(purpose='Оплата за У-14, май')

        assert result['status'] == MatchStatus.MATCHED
        assert result['plot_id'] == plot.id
        assert result['method'] == 'plot_number'
        assert result['confidence'] == Decimal('0.90')

    def test_match_by_owner_name(self, plot, owner):
        result = match_payment_to_plot(purpose='членские', payer_name='Сидорова Анна Петровна')

        assert result['plot_id'] == plot.id
        assert result['method'] == 'owner_name'
        assert result['confidence'] == Decimal('0.70')

    def test_match_by_phone_digits(self, other_plot, other_owner):
        result = match_payment_to_plot(purpose='Перевод с телефона 4433')

        assert result['plot_id'] == other_plot.id
        assert result['method'] == 'phone_last4'

    def test_ambiguous(self, plot, other_plot, owner, other_owner):
        result = match_payment_to_plot(purpose='участок 14 и №3')

        assert result['status'] == MatchStatus.AMBIGUOUS
        assert result['plot_id'] is None
        assert len(result['candidates']) == 2
        assert result['confidence'] == Decimal('0.40')

    def test_unmatched(self, plot):
        result = match_payment_to_plot(purpose='Пожертвование')

        assert result['status'] == MatchStatus.UNMATCHED
        assert result['confidence'] is None

    def test_import_statement(self, plot, owner, billing_accountant):
        statement = import_statement(content=STATEMENT_CSV, file_name='june.csv', user=billing_accountant)

        assert statement.totals == {
            'total': 4,
            'imported': 2,
            'matched': 1,
            'ambiguous': 0,
            'unmatched': 1,
            'duplicates': 0,
            'skipped_out': 1,
            'errors': 1,
        }
        matched = Payment.objects.get(external_ref='A1')
        assert matched.plot == plot
        assert matched.source == 'import'
        assert statement.payments.count() == 2
        assert AuditLog.objects.filter(action=AuditAction.IMPORT_PAYMENTS).count() == 1

    def test_reimport_counts_duplicates(self, plot, billing_accountant):
        import_statement(content=STATEMENT_CSV, file_name='june.csv', user=billing_accountant)
        statement = import_statement(content=STATEMENT_CSV, file_name='june.csv', user=billing_accountant)

        assert statement.totals['imported'] == 0
        assert statement.totals['duplicates'] == 2
        assert Payment.objects.count() == 2


@pytest.mark.django_db
class TestPenalties:

    def test_calculate_penalty(self):
        # 1000 * 0.1 * 30 / 365 = 8.219...
        assert calculate_penalty(remaining=Decimal('1000'), rate=Decimal('0.1'), days=30) == Decimal('8.22')

    def test_preview(self, plot):
        _accrual(plot, '2024-01', '1000')
        _accrual(plot, '2024-03', '1000')

        rows = preview_penalty(as_of=date(2024, 3, 1), rate=Decimal('0.1'))

        assert len(rows) == 1
        assert rows[0]['days_overdue'] == 30
        assert rows[0]['amount'] == Decimal('8.22')

    def test_min_penalty_filters(self, plot):
        _accrual(plot, '2024-01', '1000')

        assert preview_penalty(as_of=date(2024, 3, 1), rate=Decimal('0.1'), min_penalty=Decimal('10')) == []

    def test_apply_upserts_and_skips_frozen(self, plot, billing_accountant):
        january = _accrual(plot, '2024-01', '1000')
        _accrual(plot, '2024-02', '1000')

        first = apply_penalties(user=billing_accountant, as_of=date(2024, 3, 1), rate=Decimal('0.1'))
        assert first['created'] == 2

        penalty = PenaltyAccrual.objects.get(accrual=january)
        freeze_penalty(penalty_id=penalty.id, user=billing_accountant)

        second = apply_penalties(user=billing_accountant, as_of=date(2024, 4, 1), rate=Decimal('0.1'))
        assert second['updated'] == 1
        assert second['skipped'] == 1

        penalty.refresh_from_db()
        assert penalty.as_of == date(2024, 3, 1)
        assert AuditLog.objects.filter(action=AuditAction.PENALTY_APPLY).count() == 2

    def test_recalc_after_payment(self, plot, billing_accountant):
        january = _accrual(plot, '2024-01', '1000')
        apply_penalties(user=billing_accountant, as_of=date(2024, 3, 1), rate=Decimal('0.1'))
        _payment(plot, '1000')
        auto_allocate()

        result = recalc_penalties(user=billing_accountant, as_of=date(2024, 3, 1))

        assert result['updated'] == 1
        assert PenaltyAccrual.objects.get(accrual=january).amount == Decimal('0')

    def test_status_changes(self, plot, billing_accountant):
        _accrual(plot, '2024-01', '1000')
        apply_penalties(user=billing_accountant, as_of=date(2024, 3, 1))
        penalty = PenaltyAccrual.objects.get()

        with pytest.raises(ReasonRequiredError):
            void_penalty(penalty_id=penalty.id, user=billing_accountant, reason='')

        penalty = void_penalty(penalty_id=penalty.id, user=billing_accountant, reason='решение правления')
        assert penalty.status == PenaltyStatus.VOIDED

        with pytest.raises(PenaltyStateError):
            freeze_penalty(penalty_id=penalty.id, user=billing_accountant)

        penalty = unvoid_penalty(penalty_id=penalty.id, user=billing_accountant)
        penalty = freeze_penalty(penalty_id=penalty.id, user=billing_accountant)
        penalty = unfreeze_penalty(penalty_id=penalty.id, user=billing_accountant)
        assert penalty.status == PenaltyStatus.ACTIVE

        actions = set(AuditLog.objects.values_list('action', flat=True))
        assert {
            AuditAction.PENALTY_VOID,
            AuditAction.PENALTY_UNVOID,
            AuditAction.PENALTY_FREEZE,
            AuditAction.PENALTY_UNFREEZE,
        } <= actions


@pytest.mark.django_db
class TestRequisitesAndQR:

    def test_requisites_not_configured(self):
        with pytest.raises(RequisitesNotConfiguredError):
            get_active_requisites()

    def test_update_creates_version(self, requisites, billing_accountant):
        updated = update_requisites(user=billing_accountant, bank_name='АО «Банк»')

        assert updated.version == requisites.version + 1
        assert updated.account == requisites.account
        assert get_active_requisites() == updated

    def test_payment_string(self, requisites):
        payload = PaymentQRGenerator.build_payment_string(
            requisites=requisites,
            amount=Decimal('1500.00'),
            purpose='Взнос',
        )

        assert payload == (
            'ST00012|Name=СК «Улыбка»|PersonalAcc=40703810407950000058'
            '|BankName=ПАО «Челиндбанк»|BIC=047501711|CorrespAcc=30101810400000000711'
            '|PayeeINN=7423007708|KPP=745901001|Sum=150000|Purpose=Взнос'
        )

    def test_payment_string_cleans_text_and_skips_zero(self, requisites):
        payload = PaymentQRGenerator.build_payment_string(
            requisites=requisites,
            amount=Decimal('0'),
            purpose='за май|июнь\nучасток 14',
            payer_name='Иванов',
        )

        assert 'Sum=' not in payload
        assert payload.endswith('|Purpose=за май июнь участок 14|PayerName=Иванов')

    def test_generate_for_plot(self, requisites, plot, owner, accrual):
        qr = PaymentQRGenerator.generate_for_plot(plot, '2024-05')

        assert qr['amount'] == Decimal('1500')
        assert qr['purpose'] == 'Членский взнос за участок 14, 2024-05. Сидорова Анна Петровна'
        assert '|Sum=150000|' in qr['payload']

    def test_render_png(self, requisites):
        png = PaymentQRGenerator.render_png(
            PaymentQRGenerator.build_payment_string(requisites=requisites, purpose='Взнос')
        )

        assert png.startswith(b'\x89PNG')


@pytest.mark.django_db
class TestCabinet:

    def test_resident_overview(self, billing_resident, owner, plot, accrual, payment):
        cabinet = get_cabinet(billing_resident)

        assert len(cabinet) == 1
        assert cabinet[0]['plot'] == plot
        assert cabinet[0]['accrued'] == Decimal('1500')
        assert cabinet[0]['balance'] == Decimal('-500')

    def test_recent_payments_newest_first(self, billing_resident, owner, plot, payment):
        later = _payment(plot, '250', paid_at=date(2024, 7, 1))
        earlier = _payment(plot, '100', paid_at=date(2024, 1, 15))

        cabinet = get_cabinet(billing_resident)

        assert cabinet[0]['payments'] == [later, payment, earlier]

    def test_user_without_registry_card(self, billing_accountant):
        assert get_cabinet(billing_accountant) == []

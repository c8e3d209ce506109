import pytest

from apps.audit.models import AuditLog, AuditAction
from apps.registry.models import Plot, Person, PlotOwnership, InviteCode, PersonMergeHistory, PersonStatus
from apps.registry.services import (
    create_plot,
    update_plot,
    attach_owner,
    detach_owner,
    search_registry,
    split_plot_query,
    normalize_phone,
    find_potential_duplicates,
    detect_issues,
    merge_persons,
    generate_code,
    create_invite_code,
    validate_invite_code,
    redeem_invite_code,
    regenerate_invite_code,
    list_invite_codes,
    import_registry_csv,
    DuplicatePlotError,
    OwnershipNotFoundError,
    InvalidMergeError,
    InviteCodeNotFoundError,
    InviteCodeUsedError,
    RegistryImportError,
)
from apps.registry.services.invite_codes import CODE_ALPHABET


class TestHelpers:

    def test_split_plot_query(self):
        assert split_plot_query('2 14') == ('2', '14')
        assert split_plot_query('2/14') == ('2', '14')
        assert split_plot_query('Сидорова') is None

    def test_normalize_phone_keeps_last_ten_digits(self):
        assert normalize_phone('+7 (912) 345-67-89') == '9123456789'
        assert normalize_phone('89123456789') == '9123456789'
        assert normalize_phone('') == ''

    def test_generate_code_format(self):
        code = generate_code()
        assert len(code) == 9
        assert code[4] == '-'
        assert all(ch in CODE_ALPHABET for ch in code.replace('-', ''))


@pytest.mark.django_db
class TestPlotManagement:

    def test_create_plot(self):
        plot = create_plot(street=' 7 ', number='21', notes='угловой')

        assert plot.street == '7'
        assert plot.label == 'Линия 7, участок 21'

    def test_create_duplicate_plot(self, plot):
        with pytest.raises(DuplicatePlotError):
            create_plot(street=plot.street, number=plot.number)

    def test_update_into_existing_address(self, plot, other_plot):
        with pytest.raises(DuplicatePlotError):
            update_plot(plot_id=other_plot.id, street=plot.street, number=plot.number)

    def test_label_without_street(self, db):
        assert Plot(number='8').label == 'Участок 8'
        assert Plot(number='', city_address='ул. Садовая, 1').label == 'ул. Садовая, 1'
        assert Plot(number='').label == '—'

    def test_attach_primary_owner_moves_flag(self, plot, person, duplicate_person):
        attach_owner(plot_id=plot.id, person_id=duplicate_person.id, is_primary=True)

        assert plot.get_primary_owner() == duplicate_person
        assert not PlotOwnership.objects.get(plot=plot, person=person).is_primary

    def test_detach_missing_owner(self, other_plot, person):
        with pytest.raises(OwnershipNotFoundError):
            detach_owner(plot_id=other_plot.id, person_id=person.id)


@pytest.mark.django_db
class TestSearchRegistry:

    def test_by_name(self, person, duplicate_person):
        result = list(search_registry(q='Сидорова'))
        assert set(result) == {person, duplicate_person}

    def test_by_plot_number(self, person):
        assert list(search_registry(q='14')) == [person]

    def test_by_street_and_number(self, person, duplicate_person):
        assert list(search_registry(q='5/3')) == [duplicate_person]

    def test_by_status(self, person, duplicate_person):
        assert list(search_registry(status=PersonStatus.DRAFT)) == [duplicate_person]

    def test_inactive_persons_hidden(self, person):
        person.is_active = False
        person.save()
        assert list(search_registry(q='Сидорова')) == []


@pytest.mark.django_db
class TestDuplicates:

    def test_phone_match_scores_100(self, person, duplicate_person):
        candidates = find_potential_duplicates(phone='8 912 345 67 89', exclude_id=person.id)

        assert candidates[0][0] == duplicate_person
        assert candidates[0][1] == 100
        assert candidates[0][2] == 'phone'

    def test_fuzzy_name(self, person):
        candidates = find_potential_duplicates(full_name='Анна Петровна Сидорова')

        assert candidates
        assert candidates[0][2] == 'fuzzy_name'

    def test_detect_issues(self, person, duplicate_person):
        Person.objects.create(full_name='', phone='')

        report = detect_issues()
        types = [issue['type'] for issue in report['issues']]

        assert types.count('duplicate_phone') == 1
        assert 'name_conflict' in types
        assert 'empty_fullname' in types
        assert 'empty_phone' in types
        assert 'empty_plots' in types
        assert report['summary']['total'] == len(report['issues'])
        assert report['summary']['by_severity']['high'] == 2


@pytest.mark.django_db
class TestMergePersons:

    def test_merge_moves_everything(self, registry_chairman, person, duplicate_person, plot, other_plot):
        create_invite_code(person_id=duplicate_person.id)

        target = merge_persons(
            source_person_id=duplicate_person.id,
            target_person_id=person.id,
            merged_by=registry_chairman,
            reason='дубль',
        )

        assert set(target.plots.all()) == {plot, other_plot}
        assert InviteCode.objects.filter(person=target).count() == 1

        duplicate_person.refresh_from_db()
        assert not duplicate_person.is_active
        assert duplicate_person.merged_into == target

        history = PersonMergeHistory.objects.get(target_person=target)
        assert history.moved_ownerships == 1
        assert AuditLog.objects.filter(action=AuditAction.REGISTRY_MERGE).count() == 1

    def test_merge_drops_shared_ownership(self, registry_chairman, person, duplicate_person, plot):
        PlotOwnership.objects.create(plot=plot, person=duplicate_person)

        merge_persons(
            source_person_id=duplicate_person.id,
            target_person_id=person.id,
            merged_by=registry_chairman,
        )

        assert PlotOwnership.objects.filter(plot=plot).count() == 1

    def test_merge_fills_blank_contacts(self, registry_chairman, person, duplicate_person):
        merge_persons(
            source_person_id=person.id,
            target_person_id=duplicate_person.id,
            merged_by=registry_chairman,
        )

        duplicate_person.refresh_from_db()
        assert duplicate_person.email == 'sidorova@example.com'
        assert duplicate_person.phone == '89123456789'

    def test_self_merge(self, registry_chairman, person):
        with pytest.raises(InvalidMergeError):
            merge_persons(source_person_id=person.id, target_person_id=person.id, merged_by=registry_chairman)


@pytest.mark.django_db
class TestInviteCodes:

    def test_only_hash_is_stored(self, person):
        invite, code = create_invite_code(person_id=person.id)

        assert code not in invite.code_hash
        assert len(invite.code_hash) == 64
        assert invite.status == 'active'

    def test_validate_unknown(self, db):
        with pytest.raises(InviteCodeNotFoundError):
            validate_invite_code(code='AAAA-AAAA')

    def test_redeem_twice(self, person, registry_resident):
        _, code = create_invite_code(person_id=person.id)
        redeem_invite_code(code=code, user=registry_resident)

        with pytest.raises(InviteCodeUsedError):
            redeem_invite_code(code=code, user=registry_resident)

        person.refresh_from_db()
        assert person.user == registry_resident

    def test_regenerate_revokes_old_code(self, person):
        _, old_code = create_invite_code(person_id=person.id)
        _, new_code = regenerate_invite_code(person_id=person.id)

        with pytest.raises(InviteCodeNotFoundError):
            validate_invite_code(code=old_code)
        assert validate_invite_code(code=new_code).person == person

    def test_list_filter_used(self, person, registry_resident):
        _, code = create_invite_code(person_id=person.id)
        create_invite_code(person_id=person.id)
        redeem_invite_code(code=code, user=registry_resident)

        assert list_invite_codes(person_id=person.id, used=True).count() == 1
        assert list_invite_codes(person_id=person.id, used=False).count() == 1
        assert list_invite_codes(person_id=person.id).count() == 2


@pytest.mark.django_db
class TestRegistryImport:

    def test_import_creates_plots_and_persons(self):
        content = (
            '\ufeffЛиния;Участок;ФИО;Телефон;Email\n'
            '1;10;Орлов Олег;+79001112233;orlov@example.com\n'
            '1;11;Орлов Олег;89001112233;\n'
            '2;;Без участка;;\n'
        ).encode('utf-8')

        summary = import_registry_csv(content=content)

        assert summary['rows'] == 3
        assert summary['created_plots'] == 2
        assert summary['created_persons'] == 1
        assert summary['linked'] == 2
        assert summary['errors'] == [{'row': 4, 'error': 'Не указан номер участка'}]
        assert Person.objects.get(full_name='Орлов Олег').plots.count() == 2

    def test_import_cp1251_with_commas(self):
        content = 'street,number,full_name\n3,7,Ёлкина Мария\n'.encode('cp1251')

        summary = import_registry_csv(content=content)

        assert summary['created_persons'] == 1
        assert Plot.objects.filter(street='3', number='7').exists()

    def test_import_phone_number_header_is_not_plot_number(self):
        content = 'Номер телефона;Номер участка;ФИО владельца\n89005556677;21;Зайцев Игорь\n'

        summary = import_registry_csv(content=content)

        assert summary['errors'] == []
        person = Person.objects.get(full_name='Зайцев Игорь')
        assert person.plots.get().number == '21'
        assert normalize_phone(person.phone) == normalize_phone('89005556677')

    def test_import_requires_number_column(self):
        with pytest.raises(RegistryImportError):
            import_registry_csv(content='ФИО;Телефон\nИванов;1\n')

    def test_import_requires_rows(self):
        with pytest.raises(RegistryImportError):
            import_registry_csv(content='Участок\n')

"""
Unit tests for the prescription binder.

覆盖：
1. prepare() — 占位行过滤、空处方拒绝、幂等
2. save() — create → update、已有 prescription_id 直接 update
3. in-flight 锁（SAVE_IN_PROGRESS）
4. 后端字段错误按行 id 归位
"""
from unittest.mock import Mock, patch

import pytest
from django.core.cache import cache

from frontdesk.binder import LINK_KEY, LOCK_KEY, PrescriptionBinder, prepare
from frontdesk.exceptions import BackendError, BlockError, FieldValidationError, ValidationError
from frontdesk.models import Prescription as PrescriptionRow
from frontdesk.types import FollowUp, Medicine, Prescription, Visit
from tests.conftest import PrescriptionFactory, VisitFactory


# -------------------------------------------------------------------
# prepare()
# -------------------------------------------------------------------

class TestPrepare:

    def test_drops_placeholder_rows_and_keeps_ids(self, draft):
        kept_id = draft.medicines[0].id
        prepared = prepare(draft)

        assert len(prepared.medicines) == 1
        assert prepared.medicines[0].id == kept_id
        assert prepared.follow_up == FollowUp(value=7, unit='days')

    def test_is_idempotent(self, draft):
        once = prepare(draft)
        twice = prepare(once)
        assert once == twice
        # 原草稿没有被修改，仍然带着末尾空白行
        assert len(draft.medicines) == 2

    def test_strips_fields(self):
        prepared = prepare(Prescription(medicines=[
            Medicine(name='  Cetirizine ', dosage=' 0-0-1 ', duration=' 3 days ', notes=' after food '),
        ]))
        med = prepared.medicines[0]
        assert (med.name, med.dosage, med.duration, med.notes) == ('Cetirizine', '0-0-1', '3 days', 'after food')

    @pytest.mark.parametrize('medicines', [
        [],
        [Medicine()],
        [Medicine(name='   ', dosage='1-0-1', duration='5 days')],
    ])
    def test_no_medicines_rejected(self, medicines):
        with pytest.raises(ValidationError) as exc_info:
            prepare(Prescription(medicines=medicines))
        assert exc_info.value.message == 'Please add at least one medicine'

    def test_follow_up_without_value_collapses(self):
        prepared = prepare(Prescription(
            medicines=[Medicine(name='A', dosage='1-1-1', duration='2 days')],
            follow_up=FollowUp(value=None, unit='weeks'),
        ))
        assert prepared.follow_up is None


# -------------------------------------------------------------------
# save()
# -------------------------------------------------------------------

def _visit_from_row(row, prescription_id=None):
    return Visit(id=str(row.id), patient_id=str(row.patient_id), status=row.visit_status,
                 prescription_id=prescription_id)


@pytest.mark.django_db
class TestSave:

    def test_first_save_creates_and_links(self, local_backend, draft):
        row = VisitFactory(visit_status='IN_PROGRESS')
        binder = PrescriptionBinder(local_backend)

        result = binder.save(_visit_from_row(row), draft)

        assert result.action == 'create'
        row.refresh_from_db()
        assert str(row.prescription_id) == result.prescription_id
        assert PrescriptionRow.objects.count() == 1

    def test_second_save_on_same_visit_object_updates(self, local_backend, draft):
        row = VisitFactory(visit_status='IN_PROGRESS')
        binder = PrescriptionBinder(local_backend)
        visit = _visit_from_row(row)

        first = binder.save(visit, draft)
        draft.medicines[0].duration = '7 days'
        second = binder.save(visit, draft)

        assert second.action == 'update'
        assert second.prescription_id == first.prescription_id
        assert PrescriptionRow.objects.count() == 1
        saved = local_backend.get_prescription(first.prescription_id)
        assert saved.medicines[0].duration == '7 days'

    def test_seeded_prescription_id_hits_update_not_create(self, local_backend, draft):
        existing = PrescriptionFactory()
        row = VisitFactory(visit_status='IN_PROGRESS', prescription=existing)
        backend = Mock(wraps=local_backend)

        result = PrescriptionBinder(backend).save(_visit_from_row(row, str(existing.id)), draft)

        assert result.action == 'update'
        backend.update_prescription.assert_called_once()
        backend.create_prescription.assert_not_called()

    def test_blank_row_does_not_change_payload(self, draft):
        backend = Mock()
        backend.create_prescription.return_value = 'rx-1'
        binder = PrescriptionBinder(backend)
        visit = Visit(id='v-blank', patient_id='p1', status='IN_PROGRESS')

        binder.save(visit, draft)
        draft.medicines.append(Medicine())
        binder.save(visit, draft)

        sent_create = backend.create_prescription.call_args.args[1]
        sent_update = backend.update_prescription.call_args.args[1]
        assert sent_create.medicines == sent_update.medicines

    def test_empty_draft_makes_no_backend_call(self):
        backend = Mock()
        visit = Visit(id='v1', patient_id='p1', status='IN_PROGRESS')

        with pytest.raises(ValidationError):
            PrescriptionBinder(backend).save(visit, Prescription(medicines=[Medicine()]))

        backend.create_prescription.assert_not_called()
        backend.update_prescription.assert_not_called()

    def test_missing_created_id_is_backend_error(self, draft):
        backend = Mock()
        backend.create_prescription.return_value = ''
        visit = Visit(id='v1', patient_id='p1', status='IN_PROGRESS')

        with pytest.raises(BackendError) as exc_info:
            PrescriptionBinder(backend).save(visit, draft)

        assert exc_info.value.code == 'PRESCRIPTION_CREATE_ERROR'

    def test_in_flight_save_is_blocked(self, draft):
        backend = Mock()
        visit = Visit(id='v-busy', patient_id='p1', status='IN_PROGRESS')
        cache.add(LOCK_KEY.format(visit_id=visit.id), 1)

        with pytest.raises(BlockError) as exc_info:
            PrescriptionBinder(backend).save(visit, draft)

        assert exc_info.value.code == 'SAVE_IN_PROGRESS'
        assert exc_info.value.http_status == 409
        backend.create_prescription.assert_not_called()

    def test_link_memo_expires(self, draft, settings):
        settings.PRESCRIPTION_LINK_SECONDS = 600
        backend = Mock()
        backend.create_prescription.return_value = 'rx-1'
        visit = Visit(id='v-link', patient_id='p1', status='IN_PROGRESS')
        binder = PrescriptionBinder(backend)

        with patch('frontdesk.binder.cache') as mock_cache:
            mock_cache.add.return_value = True
            mock_cache.get.return_value = None
            binder.save(visit, draft)

        mock_cache.set.assert_called_once_with(LINK_KEY.format(visit_id='v-link'), 'rx-1', timeout=600)

    def test_lock_released_after_failure(self, draft):
        backend = Mock()
        backend.create_prescription.side_effect = BackendError('boom')
        visit = Visit(id='v-fail', patient_id='p1', status='IN_PROGRESS')

        with pytest.raises(BackendError):
            PrescriptionBinder(backend).save(visit, draft)

        assert cache.get(LOCK_KEY.format(visit_id=visit.id)) is None

    def test_field_errors_mapped_to_rows(self):
        a = Medicine(name='A', dosage='1-0-1', duration='5 days')
        b = Medicine(name='B', dosage='0-0-1', duration='3 days')
        draft = Prescription(medicines=[a, Medicine(), b])
        backend = Mock()
        backend.create_prescription.side_effect = FieldValidationError(
            'Invalid prescription',
            detail={'fields': {'medicine_1_dosage': 'Unknown dosage'}},
        )
        visit = Visit(id='v1', patient_id='p1', status='IN_PROGRESS')

        with pytest.raises(FieldValidationError) as exc_info:
            PrescriptionBinder(backend).save(visit, draft)

        # 位置 1 指的是过滤后的列表，也就是 B，不是中间的空白行
        assert exc_info.value.detail['medicine_errors'] == {b.id: {'dosage': 'Unknown dosage'}}

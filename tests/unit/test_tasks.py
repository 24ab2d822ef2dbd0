"""
Unit tests for the notes autosave Celery task — 直接调用函数体，不经过 broker。
"""
import uuid
from unittest.mock import patch

import pytest

from frontdesk.exceptions import NetworkError
from frontdesk.tasks import autosave_visit_notes
from tests.conftest import VisitFactory


@pytest.mark.django_db
class TestAutosaveVisitNotes:

    def test_saves_notes(self):
        row = VisitFactory(visit_status='IN_PROGRESS')

        autosave_visit_notes(str(row.id), 'cough since 3 days')

        row.refresh_from_db()
        assert row.notes == 'cough since 3 days'

    def test_skips_completed_visit(self):
        row = VisitFactory(visit_status='COMPLETED', notes='final')

        autosave_visit_notes(str(row.id), 'late edit')

        row.refresh_from_db()
        assert row.notes == 'final'

    def test_missing_visit_is_logged_not_raised(self, caplog):
        autosave_visit_notes(str(uuid.uuid4()), 'x')
        assert '备注自动保存失败' in caplog.text

    def test_backend_failure_is_logged_not_raised(self, caplog):
        row = VisitFactory(visit_status='IN_PROGRESS')

        with patch('frontdesk.gateway.local.LocalBackend.update_visit_notes',
                   side_effect=NetworkError('offline')):
            autosave_visit_notes(str(row.id), 'x')

        assert 'NETWORK_ERROR' in caplog.text

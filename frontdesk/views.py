"""
HTTP 层 — 每个 view 对应前台的一个用户操作，只负责：
  取参数 → 调一个核心操作 → 包成 envelope 返回

异常一律不在这里捕获，由 exception_handler.unified_exception_handler 统一格式化。
"""

from django.http import HttpResponse
from rest_framework import status as http_status
from rest_framework.response import Response
from rest_framework.views import APIView

from .binder import PrescriptionBinder
from .delivery import DeliveryDispatcher, render_print_preview
from .exceptions import BlockError, ValidationError
from .gateway import get_backend
from .resolver import PatientResolver
from .serializers import (
    parse_patient_draft,
    parse_prescription_draft,
    serialize_appointment,
    serialize_delivery_outcome,
    serialize_patient,
    serialize_print_job,
    serialize_resolution,
    serialize_save_result,
    serialize_visit,
    serialize_visit_list,
)
from .services import check_in_appointment, mark_no_show, waiting_queue
from .session import bootstrap
from .types import PrintJob
from .visits import VisitLifecycle


class Workflow:
    """一次请求用到的核心服务，全部共享同一个 backend 和 session。"""

    def __init__(self, session):
        self.session = session
        self.backend = get_backend(session)
        self.lifecycle = VisitLifecycle(self.backend, clinic_id=session.clinic_id)
        self.binder = PrescriptionBinder(self.backend)
        self.dispatcher = DeliveryDispatcher(self.backend, self.binder, self.lifecycle, session=session)
        self.resolver = PatientResolver(self.backend)


def envelope(session, data, status=http_status.HTTP_200_OK):
    return Response(
        {'success': True, 'data': data, 'notices': session.drain()},
        status=status,
    )


def _body(request) -> dict:
    if not isinstance(request.data, dict):
        raise ValidationError(message='Request body must be a JSON object')
    return request.data


class ClinicAPIView(APIView):
    authentication_classes = []
    permission_classes = []


# ── Patient ────────────────────────────────────────────────────────────────

class PatientResolveView(ClinicAPIView):
    """POST /api/patients/resolve/ - 手机号 → 已有患者 / 新建草稿"""

    def post(self, request):
        with bootstrap(request) as session:
            resolution = Workflow(session).resolver.resolve(_body(request).get('mobile'))
            return envelope(session, serialize_resolution(resolution))


class PatientCreateView(ClinicAPIView):
    """POST /api/patients/ - 新患者建档"""

    def post(self, request):
        with bootstrap(request) as session:
            patient = Workflow(session).resolver.register(parse_patient_draft(_body(request)))
            session.notify('success', 'Patient registered', patient.name)
            return envelope(session, serialize_patient(patient), status=http_status.HTTP_201_CREATED)


class PatientDetailView(ClinicAPIView):
    """GET /api/patients/<id>/ - 患者信息 + 最近的 visit"""

    def get(self, request, patient_id):
        with bootstrap(request) as session:
            backend = Workflow(session).backend
            patient = backend.get_patient(patient_id)
            visits = backend.list_patient_visits(patient.id, status=request.query_params.get('status'))
            data = serialize_patient(patient)
            data['visits'] = serialize_visit_list(visits)['visits']
            return envelope(session, data)


class PatientOpenVisitView(ClinicAPIView):
    """POST /api/patients/<id>/open-visit/ - 选中患者：复用进行中的 visit 或新建"""

    def post(self, request, patient_id):
        with bootstrap(request) as session:
            flow = Workflow(session)
            body = _body(request)
            patient = flow.backend.get_patient(patient_id)
            visit = flow.lifecycle.open_for_patient(
                patient,
                doctor_id=body.get('doctor_id'),
                reason=body.get('visit_reason', ''),
            )
            return envelope(session, serialize_visit(visit))


# ── Visit ──────────────────────────────────────────────────────────────────

class VisitCreateView(ClinicAPIView):
    """POST /api/visits/ - 新建 visit（一律 WAITING）"""

    def post(self, request):
        with bootstrap(request) as session:
            body = _body(request)
            visit = Workflow(session).lifecycle.create(
                body.get('patient_id'),
                doctor_id=body.get('doctor_id'),
                reason=body.get('visit_reason', ''),
                status=body.get('status'),
            )
            session.notify('success', 'Visit created')
            return envelope(session, serialize_visit(visit), status=http_status.HTTP_201_CREATED)


class WaitingVisitsView(ClinicAPIView):
    """GET /api/visits/waiting/ - 排队列表，先到先看"""

    def get(self, request):
        with bootstrap(request) as session:
            visits = waiting_queue(Workflow(session).backend)
            return envelope(session, serialize_visit_list(visits))


class VisitDetailView(ClinicAPIView):
    """GET /api/visits/<id>/ - visit + 已保存的处方 + 当前步骤"""

    def get(self, request, visit_id):
        with bootstrap(request) as session:
            visit = Workflow(session).lifecycle.get(visit_id, with_prescription=True)
            return envelope(session, serialize_visit(visit))


class VisitStartView(ClinicAPIView):
    """POST /api/visits/<id>/start/ - WAITING → IN_PROGRESS"""

    def post(self, request, visit_id):
        with bootstrap(request) as session:
            lifecycle = Workflow(session).lifecycle
            visit = lifecycle.start(lifecycle.get(visit_id))
            return envelope(session, serialize_visit(visit))


class VisitNotesView(ClinicAPIView):
    """
    PUT /api/visits/<id>/notes/

    {"notes": "...", "autosave": true}  → 202，后台保存，不等结果
    {"notes": "..."}                    → 200，同步保存，返回最新 visit
    """

    def put(self, request, visit_id):
        with bootstrap(request) as session:
            body = _body(request)
            lifecycle = Workflow(session).lifecycle
            visit = lifecycle.get(visit_id)
            notes = body.get('notes')

            if body.get('autosave'):
                lifecycle.autosave_notes(visit, notes, access_token=session.access_token)
                return envelope(session, None, status=http_status.HTTP_202_ACCEPTED)

            updated = lifecycle.save_notes(visit, notes)
            session.notify('success', 'Notes saved')
            return envelope(session, serialize_visit(updated))


class VisitPrescriptionView(ClinicAPIView):
    """PUT /api/visits/<id>/prescription/ - 保存处方（create 或 update 由 binder 决定）"""

    def put(self, request, visit_id):
        with bootstrap(request) as session:
            flow = Workflow(session)
            visit = flow.lifecycle.get(visit_id)
            result = flow.binder.save(visit, parse_prescription_draft(_body(request)))
            session.notify('success', 'Prescription saved')

            # 保存不会改动内存里的 visit，这里重新取一次
            refreshed = flow.lifecycle.get(visit_id, with_prescription=True)
            return envelope(session, {
                'save': serialize_save_result(result),
                'visit': serialize_visit(refreshed),
            })


class VisitFinishView(ClinicAPIView):
    """POST /api/visits/<id>/finish/ - 保存处方 → COMPLETED"""

    def post(self, request, visit_id):
        with bootstrap(request) as session:
            flow = Workflow(session)
            visit = flow.lifecycle.get(visit_id)
            outcome = flow.dispatcher.finish(visit, parse_prescription_draft(_body(request)))
            return envelope(session, serialize_delivery_outcome(outcome))


class VisitPrintView(ClinicAPIView):
    """
    POST /api/visits/<id>/print/ - 保存处方 → 打印预览（状态不变）
    GET  /api/visits/<id>/print/ - 已保存处方的纯文本预览（下载）
    """

    def post(self, request, visit_id):
        with bootstrap(request) as session:
            flow = Workflow(session)
            visit = flow.lifecycle.get(visit_id)
            job = flow.dispatcher.prepare_print(visit, parse_prescription_draft(_body(request)))
            return envelope(session, serialize_print_job(job))

    def get(self, request, visit_id):
        with bootstrap(request) as session:
            flow = Workflow(session)
            visit = flow.lifecycle.get(visit_id, with_prescription=True)
            if visit.prescription is None:
                raise BlockError(
                    message='Save the prescription before printing',
                    code='PRESCRIPTION_NOT_SAVED',
                    detail={'visit_id': visit.id},
                )
            job = PrintJob(
                visit=visit,
                patient=flow.backend.get_patient(visit.patient_id),
                prescription=visit.prescription,
                prescription_id=visit.prescription_id,
            )

        filename = f"prescription_{visit.id}_{visit.date.strftime('%Y%m%d') if visit.date else 'draft'}.txt"
        response = HttpResponse(render_print_preview(job), content_type='text/plain; charset=utf-8')
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response


class VisitPrintConfirmView(ClinicAPIView):
    """POST /api/visits/<id>/print/confirm/ {"prescription_id": ...} - 打印 → COMPLETED"""

    def post(self, request, visit_id):
        with bootstrap(request) as session:
            flow = Workflow(session)
            visit = flow.lifecycle.get(visit_id)
            completed = flow.dispatcher.confirm_print(visit, _body(request).get('prescription_id'))
            return envelope(session, serialize_visit(completed))


class VisitWhatsAppView(ClinicAPIView):
    """POST /api/visits/<id>/whatsapp/ - 保存 → 发送 → 成功才 COMPLETED"""

    def post(self, request, visit_id):
        with bootstrap(request) as session:
            flow = Workflow(session)
            visit = flow.lifecycle.get(visit_id)
            outcome = flow.dispatcher.send_whatsapp(visit, parse_prescription_draft(_body(request)))
            return envelope(session, serialize_delivery_outcome(outcome))


# ── Appointment ────────────────────────────────────────────────────────────

class AppointmentCheckInView(ClinicAPIView):
    """POST /api/appointments/<id>/check-in/"""

    def post(self, request, appointment_id):
        with bootstrap(request) as session:
            appointment = check_in_appointment(Workflow(session).backend, appointment_id)
            session.notify('success', 'Patient checked in', appointment.name)
            return envelope(session, serialize_appointment(appointment))


class AppointmentNoShowView(ClinicAPIView):
    """POST /api/appointments/<id>/no-show/"""

    def post(self, request, appointment_id):
        with bootstrap(request) as session:
            appointment = mark_no_show(Workflow(session).backend, appointment_id)
            return envelope(session, serialize_appointment(appointment))

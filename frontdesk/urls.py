from django.urls import path

from .views import (
    AppointmentCheckInView,
    AppointmentNoShowView,
    PatientCreateView,
    PatientDetailView,
    PatientOpenVisitView,
    PatientResolveView,
    VisitCreateView,
    VisitDetailView,
    VisitFinishView,
    VisitNotesView,
    VisitPrescriptionView,
    VisitPrintConfirmView,
    VisitPrintView,
    VisitStartView,
    VisitWhatsAppView,
    WaitingVisitsView,
)

urlpatterns = [
    path('patients/', PatientCreateView.as_view(), name='patient-create'),
    path('patients/resolve/', PatientResolveView.as_view(), name='patient-resolve'),
    path('patients/<str:patient_id>/', PatientDetailView.as_view(), name='patient-detail'),
    path('patients/<str:patient_id>/open-visit/', PatientOpenVisitView.as_view(), name='patient-open-visit'),

    path('visits/', VisitCreateView.as_view(), name='visit-create'),
    path('visits/waiting/', WaitingVisitsView.as_view(), name='visit-waiting'),
    path('visits/<str:visit_id>/', VisitDetailView.as_view(), name='visit-detail'),
    path('visits/<str:visit_id>/start/', VisitStartView.as_view(), name='visit-start'),
    path('visits/<str:visit_id>/notes/', VisitNotesView.as_view(), name='visit-notes'),
    path('visits/<str:visit_id>/prescription/', VisitPrescriptionView.as_view(), name='visit-prescription'),
    path('visits/<str:visit_id>/finish/', VisitFinishView.as_view(), name='visit-finish'),
    path('visits/<str:visit_id>/print/', VisitPrintView.as_view(), name='visit-print'),
    path('visits/<str:visit_id>/print/confirm/', VisitPrintConfirmView.as_view(), name='visit-print-confirm'),
    path('visits/<str:visit_id>/whatsapp/', VisitWhatsAppView.as_view(), name='visit-whatsapp'),

    path('appointments/<str:appointment_id>/check-in/', AppointmentCheckInView.as_view(), name='appointment-check-in'),
    path('appointments/<str:appointment_id>/no-show/', AppointmentNoShowView.as_view(), name='appointment-no-show'),
]

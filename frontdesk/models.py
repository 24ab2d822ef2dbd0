"""
本地存储（LocalBackend 使用）。

真实数据在远端 REST 后端；这里的表只在 CLINIC_BACKEND=local 时使用
（离线 / 开发 / 测试），字段命名与 REST API 保持一致。
"""

import uuid
from django.db import models


class Patient(models.Model):
    GENDER_CHOICES = [
        ('M', 'Male'),
        ('F', 'Female'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    mobile_number = models.CharField(max_length=16, db_index=True)
    age = models.PositiveIntegerField(blank=True, null=True)
    gender = models.CharField(max_length=1, choices=GENDER_CHOICES, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'patients'


class Prescription(models.Model):
    UNIT_CHOICES = [
        ('DAYS', 'Days'),
        ('WEEKS', 'Weeks'),
        ('MONTHS', 'Months'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    follow_up = models.PositiveIntegerField(blank=True, null=True)
    follow_up_unit = models.CharField(max_length=10, choices=UNIT_CHOICES, blank=True, null=True)
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'prescriptions'


class PrescriptionItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    prescription = models.ForeignKey(Prescription, on_delete=models.CASCADE, related_name='items')
    position = models.PositiveIntegerField(default=0)
    medicine = models.CharField(max_length=200)
    dosage = models.CharField(max_length=10)
    duration = models.CharField(max_length=50)
    notes = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'prescription_items'
        ordering = ['position']


class Visit(models.Model):
    STATUS_CHOICES = [
        ('WAITING', 'Waiting'),
        ('IN_PROGRESS', 'In progress'),
        ('COMPLETED', 'Completed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='visits')
    clinic_id = models.CharField(max_length=64, blank=True, null=True)
    doctor_id = models.CharField(max_length=64, blank=True, null=True)
    visit_reason = models.CharField(max_length=255, blank=True, default='')
    visit_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='WAITING')
    notes = models.TextField(blank=True, default='')
    # visit → prescription 单向引用，处方本身不知道属于哪个 visit
    prescription = models.OneToOneField(
        Prescription, on_delete=models.SET_NULL, blank=True, null=True, related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'visits'


class Appointment(models.Model):
    STATUS_CHOICES = [
        ('WAITING', 'Waiting'),
        ('CHECKED_IN', 'Checked in'),
        ('NO_SHOW', 'No show'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    mobile_number = models.CharField(max_length=16)
    doctor_id = models.CharField(max_length=64, blank=True, null=True)
    appointment_date_time = models.DateTimeField(blank=True, null=True)
    appointment_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='WAITING')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'appointments'

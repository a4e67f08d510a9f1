from django.core.management.base import BaseCommand
from django.db import transaction

from clinic.models import Doctor, Patient, User

DEMO_PASSWORD = "Demo-pass-2024"

DEMO_SET = [
    ("admin@example.com", "Demo Admin", User.ROLE_ADMIN),
    ("doctor@example.com", "Demo Doctor", User.ROLE_DOCTOR),
    ("patient@example.com", "Demo Patient", User.ROLE_PATIENT),
]


class Command(BaseCommand):
    help = "Ensure demo admin/doctor/patient accounts exist with a known password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default=DEMO_PASSWORD)

    @transaction.atomic
    def handle(self, *args, **opts):
        password = opts["password"]
        for email, name, role in DEMO_SET:
            u = User.objects.filter(email=email).first()
            if u is None:
                u = User.objects.create_user(email=email, password=password, name=name, role=role)
            else:
                # reset password, role and activation
                u.set_password(password)
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            if role == User.ROLE_ADMIN and not u.is_staff:
                u.is_staff = True
                u.save(update_fields=["is_staff"])
            if role == User.ROLE_DOCTOR:
                Doctor.objects.get_or_create(user=u, defaults={
                    "specialty": "General Practice",
                    "qualification": "MBBS",
                    "license_number": "DEMO-0001",
                    "available_days": ["Monday", "Wednesday", "Friday"],
                })
            elif role == User.ROLE_PATIENT:
                Patient.objects.get_or_create(user=u)
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({role})"))
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))

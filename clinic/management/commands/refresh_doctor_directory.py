from django.core.management.base import BaseCommand

from clinic.services.doctors import cached_directory, invalidate_directory


class Command(BaseCommand):
    help = "Invalidate the cached doctor directory and warm its unfiltered pages."

    def handle(self, *args, **options):
        invalidate_directory()
        full = cached_directory()
        video = cached_directory(video_only=True)
        self.stdout.write(self.style.SUCCESS(
            f"Directory refreshed: {full['pagination']['total']} doctors, "
            f"{video['pagination']['total']} accepting video calls"
        ))

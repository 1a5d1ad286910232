from pathlib import Path

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from accounts.roles import Principal
from academics import marks_import
from academics.exceptions import ImportRejected
from academics.models import Subject
from academics.stores import get_mark_store


class Command(BaseCommand):
    help = "Import a student_id,marks CSV file for one subject and exam type."

    def add_arguments(self, parser):
        parser.add_argument("path", help="CSV file (student_id,marks)")
        parser.add_argument("--subject", required=True, help="subject id")
        parser.add_argument("--exam-type", required=True, choices=marks_import.EXAM_KINDS)
        parser.add_argument("--as", dest="acting_email", required=True, help="email of the teacher running the import")

    def handle(self, *args, **opts):
        path = Path(opts["path"])
        if not path.is_file():
            raise CommandError(f"{path} does not exist")
        if not Subject.objects.filter(id=opts["subject"]).exists():
            raise CommandError(f"subject {opts['subject']} not found")

        User = get_user_model()
        try:
            teacher = User.objects.get(email=User.objects.normalize_login(opts["acting_email"]))
        except User.DoesNotExist:
            raise CommandError(f"no user {opts['acting_email']}")

        text = path.read_text(encoding="utf-8-sig")
        try:
            summary = marks_import.import_marks_csv(
                Principal.from_user(teacher), text, opts["subject"], opts["exam_type"], get_mark_store(),
            )
        except ImportRejected as e:
            raise CommandError(str(e))

        self.stdout.write(summary.message)
        for row, reason in summary.row_notes:
            self.stdout.write(f"  row {row}: {reason}")
        if summary.classification != marks_import.CLASS_SUCCESS:
            self.stderr.write(
                f"{summary.error_count} rows not imported ({summary.classification})"
            )

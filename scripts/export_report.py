"""Export a report view to a file without running the server.

Usage:
    python scripts/export_report.py income --format xlsx
    python scripts/export_report.py contributor --format csv --min-total 100
    python scripts/export_report.py monthly --format docx --reference-year 2024 --output reports/
"""
import argparse
import sys
import os
from datetime import date

# project root on sys.path when run as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loguru import logger

from analytics.contributors import ContributorQuery
from database import DatabaseManager
from errors import WorkshopTrackerError
from reports import views
from reports.exporters import CONTENT_TYPES, export_view, write_export


def build_view(db, view, args):
    """Build an ExportView over every record in the database."""
    if view == "client":
        return views.client_view(db.list_clients(args.search), {"Search": args.search})
    if view == "email_notification":
        return views.notification_view(db.list_notifications(args.limit))

    if view == "contributor":
        # the ledger applies its own date range
        query = ContributorQuery(
            start=args.start, end=args.end, search=args.search,
            min_total=args.min_total, sort_by=args.sort_by,
            descending=not args.ascending,
        )
        return views.contributor_view(db.list_expenses(None), db.list_incomes(None), query)

    incomes = db.list_incomes(None, args.start, args.end)
    expenses = db.list_expenses(None, args.start, args.end)
    filters = {
        "From": args.start.isoformat() if args.start else None,
        "To": args.end.isoformat() if args.end else None,
    }
    if view == "income":
        return views.income_view(incomes, filters)
    if view == "expense":
        return views.expense_view(expenses, filters)
    if view == "category":
        return views.category_view(expenses, filters)
    if view == "class_type":
        return views.class_type_view(incomes, filters)
    return views.monthly_view(incomes, expenses, args.reference_year, filters)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Export a Workshop Tracker report")
    parser.add_argument("view", choices=views.EXPORT_VIEWS)
    parser.add_argument("--format", default="csv", choices=sorted(CONTENT_TYPES))
    parser.add_argument("--db", default=None, help="database URL (default: DATABASE_URL)")
    parser.add_argument("--output", default=None, help="output directory (default: EXPORT_DIR)")
    parser.add_argument("--start", type=date.fromisoformat, default=None, help="start date YYYY-MM-DD")
    parser.add_argument("--end", type=date.fromisoformat, default=None, help="end date YYYY-MM-DD")
    parser.add_argument("--search", default=None)
    parser.add_argument("--min-total", type=float, default=None)
    parser.add_argument("--sort-by", default="total")
    parser.add_argument("--ascending", action="store_true")
    parser.add_argument("--reference-year", type=int, default=None)
    parser.add_argument("--limit", type=int, default=500)
    args = parser.parse_args(argv)

    db = DatabaseManager(args.db)
    try:
        result = export_view(build_view(db, args.view, args), args.format)
        path = write_export(result, args.output)
    except (WorkshopTrackerError, ValueError) as e:
        logger.error(f"Export failed: {e}")
        return 1
    finally:
        db.close()

    print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""HTTP API.

``create_app`` wires the database facade and the services into a FastAPI
application. Every ``/api`` route except sign-up and login requires a
``Authorization: Bearer <token>`` header.

Routes:
- POST /api/signup, POST /api/login, POST /api/logout
- GET/PUT /api/profile, PUT /api/profile/password
- POST/GET /api/{income,expense}, GET/PUT/DELETE /api/{income,expense}/{id}
- GET /api/summary
- GET/POST/PUT/DELETE /api/class-types (writes admin only)
- GET/POST/PUT/DELETE /api/clients, GET /api/clients/stats
- GET/POST/DELETE /api/documents, GET /api/documents/{id}/download
- GET /api/analytics/{dashboard,categories,classes,platforms,monthly,
  who-paid,insights,charts}
- GET /api/export/{view}?format=csv|xlsx|json|docx|pdf
- GET /api/export/financial-summary (pdf)
- GET /api/notifications, POST /api/notifications/test (admin)
- GET /api/options, GET /health
"""
import asyncio
from datetime import date
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from analytics import grouping, insights, presenters
from analytics.contributors import ContributorQuery, build_ledger, ledger_totals
from auth.context import AuthContext
from auth.tokens import TokenStore
from business.accounts import AccountService
from business.documents import DocumentService, LocalDocumentStore
from business.fetchers import fetch_all, fetch_dashboard, fetch_records
from business.notifications import NotificationClient
from business.records import RECORD_KINDS, RecordService
from config.business_config import business_config
from config.settings import settings
from errors import (
    AuthenticationError, NotFoundError, ValidationError, WorkshopTrackerError
)
from reports import views
from reports.exporters import export_view, financial_summary_pdf


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _store_failure(action: str, e: Exception, status_code: int) -> JSONResponse:
    """Map an unexpected store failure to the route's failure status."""
    logger.error(f"{action} failed: {e}")
    return _error(status_code, str(e))


def _who_paid_query(start: Optional[date], end: Optional[date],
                    search: Optional[str], min_total: Optional[float],
                    sort_by: str, order: str) -> ContributorQuery:
    try:
        return ContributorQuery(
            start=start, end=end, search=search, min_total=min_total,
            sort_by=sort_by, descending=(order.lower() != "asc"),
        )
    except ValueError as e:
        raise ValidationError(str(e))


def _attachment(filename: str) -> Dict[str, str]:
    """Content-Disposition for any file name.

    The quoted ``filename`` is an ASCII fallback; ``filename*`` carries the
    real name percent-encoded as UTF-8 (RFC 6266).
    """
    fallback = "".join(
        c if 32 <= ord(c) < 127 and c not in '"\\' else "_" for c in filename
    ) or "download"
    return {
        "Content-Disposition":
            f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"
    }


def create_app(db, tokens: Optional[TokenStore] = None,
               notifier: Optional[NotificationClient] = None,
               document_store: Optional[LocalDocumentStore] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        db: DatabaseManager.
        tokens: Token store, a fresh one when None.
        notifier: Email notification client, one built from settings when None.
        document_store: Upload storage, ``settings.upload_dir`` when None.

    Returns:
        FastAPI app; ``app.state`` exposes ``db``, ``accounts``,
        ``records`` and ``documents``.
    """
    app = FastAPI(
        title=settings.app_name,
        description=f"{settings.company_name} workshop income and expense tracker",
        version="1.0.0",
    )

    accounts = AccountService(db, tokens or TokenStore())
    notifier = notifier if notifier is not None else NotificationClient(db)
    records = RecordService(db, notifier)
    documents = DocumentService(db, document_store or LocalDocumentStore())
    app.state.db = db
    app.state.accounts = accounts
    app.state.records = records
    app.state.documents = documents

    def get_auth(request: Request) -> AuthContext:
        """Resolve the bearer token to an AuthContext."""
        header = request.headers.get("Authorization", "")
        token = header[7:] if header.startswith("Bearer ") else None
        return accounts.authenticate(token)

    # ==================== Error handlers ====================

    @app.exception_handler(WorkshopTrackerError)
    async def tracker_error_handler(request: Request, exc: WorkshopTrackerError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message}")
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(p) for p in first.get("loc", ())[1:])
        message = first.get("msg", "Invalid request")
        return _error(400, f"{location}: {message}" if location else message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error(404, "Not Found")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return _error(500, "Something went wrong!")

    # ==================== Health ====================

    @app.get("/health")
    async def health_check():
        return {
            "status": "ok",
            "app": settings.app_name,
            "database": db.database_url.split("://", 1)[0],
        }

    # ==================== Accounts ====================

    @app.post("/api/signup", status_code=201)
    async def signup(data: Dict[str, Any]):
        return await asyncio.to_thread(
            accounts.signup,
            data.get("full_name", ""), data.get("email", ""),
            data.get("password", ""), data.get("confirm_password", ""),
            data.get("username"),
        )

    @app.post("/api/login")
    async def login(data: Dict[str, Any]):
        try:
            result = await asyncio.to_thread(
                accounts.login, data.get("email", ""), data.get("password", "")
            )
        except AuthenticationError as e:
            return JSONResponse(status_code=401,
                                content={"success": False, "error": e.message})
        return {"success": True, **result}

    @app.post("/api/logout")
    async def logout(request: Request, auth: AuthContext = Depends(get_auth)):
        accounts.logout(request.headers.get("Authorization", "")[7:])
        return {"success": True}

    @app.get("/api/profile")
    async def get_profile(auth: AuthContext = Depends(get_auth)):
        profile = await asyncio.to_thread(db.get_profile, auth.profile_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    @app.put("/api/profile")
    async def update_profile(data: Dict[str, Any], auth: AuthContext = Depends(get_auth)):
        return await asyncio.to_thread(accounts.update_profile, auth, data)

    @app.put("/api/profile/password")
    async def change_password(data: Dict[str, Any], auth: AuthContext = Depends(get_auth)):
        await asyncio.to_thread(
            accounts.change_password, auth,
            data.get("current_password", ""), data.get("new_password", ""),
            data.get("confirm_password", ""),
        )
        return {"success": True, "message": "Password updated successfully"}

    # ==================== Income / expense passthrough ====================

    def register_record_routes(kind: str) -> None:
        path = f"/api/{kind}"

        @app.post(path, status_code=201, name=f"create_{kind}")
        async def create_record(data: Dict[str, Any], auth: AuthContext = Depends(get_auth)):
            try:
                return await asyncio.to_thread(records.create, kind, auth, data)
            except WorkshopTrackerError:
                raise
            except Exception as e:
                return _store_failure(f"Create {kind}", e, 400)

        @app.get(path, name=f"list_{kind}")
        async def list_records(auth: AuthContext = Depends(get_auth)):
            try:
                return await asyncio.to_thread(records.list, kind, auth)
            except WorkshopTrackerError:
                raise
            except Exception as e:
                return _store_failure(f"List {kind}", e, 500)

        @app.get(path + "/{record_id}", name=f"get_{kind}")
        async def get_record(record_id: int, auth: AuthContext = Depends(get_auth)):
            try:
                return await asyncio.to_thread(records.get, kind, auth, record_id)
            except WorkshopTrackerError:
                raise
            except Exception as e:
                return _store_failure(f"Get {kind} {record_id}", e, 404)

        @app.put(path + "/{record_id}", name=f"update_{kind}")
        async def update_record(record_id: int, data: Dict[str, Any],
                                auth: AuthContext = Depends(get_auth)):
            try:
                return await asyncio.to_thread(records.update, kind, auth, record_id, data)
            except WorkshopTrackerError:
                raise
            except Exception as e:
                return _store_failure(f"Update {kind} {record_id}", e, 400)

        @app.delete(path + "/{record_id}", status_code=204, name=f"delete_{kind}")
        async def delete_record(record_id: int, auth: AuthContext = Depends(get_auth)):
            try:
                await asyncio.to_thread(records.delete, kind, auth, record_id)
            except WorkshopTrackerError:
                raise
            except Exception as e:
                return _store_failure(f"Delete {kind} {record_id}", e, 400)
            return Response(status_code=204)

    for record_kind in RECORD_KINDS:
        register_record_routes(record_kind)

    @app.get("/api/summary")
    async def summary(auth: AuthContext = Depends(get_auth)):
        data = await fetch_records(db, auth)
        return grouping.summary_totals(data["incomes"], data["expenses"])

    # ==================== Class types ====================

    @app.get("/api/class-types")
    async def list_class_types(auth: AuthContext = Depends(get_auth)):
        return await asyncio.to_thread(db.list_class_types)

    @app.post("/api/class-types", status_code=201)
    async def create_class_type(data: Dict[str, Any], auth: AuthContext = Depends(get_auth)):
        auth.require_admin()
        return await asyncio.to_thread(
            db.create_class_type, data.get("name", ""), data.get("cost_per_person", 0)
        )

    @app.put("/api/class-types/{class_type_id}")
    async def update_class_type(class_type_id: int, data: Dict[str, Any],
                                auth: AuthContext = Depends(get_auth)):
        auth.require_admin()
        return await asyncio.to_thread(db.update_class_type, class_type_id, data)

    @app.delete("/api/class-types/{class_type_id}", status_code=204)
    async def delete_class_type(class_type_id: int, auth: AuthContext = Depends(get_auth)):
        auth.require_admin()
        if not await asyncio.to_thread(db.delete_class_type, class_type_id):
            raise NotFoundError("Class type not found")
        return Response(status_code=204)

    # ==================== Clients ====================

    @app.get("/api/clients")
    async def list_clients(search: Optional[str] = None,
                           auth: AuthContext = Depends(get_auth)):
        return await asyncio.to_thread(db.list_clients, search)

    @app.get("/api/clients/stats")
    async def client_stats(auth: AuthContext = Depends(get_auth)):
        return await asyncio.to_thread(db.client_stats)

    @app.get("/api/clients/{client_id}")
    async def get_client(client_id: int, auth: AuthContext = Depends(get_auth)):
        return await asyncio.to_thread(db.get_client_detail, client_id)

    @app.post("/api/clients", status_code=201)
    async def create_client(data: Dict[str, Any], auth: AuthContext = Depends(get_auth)):
        return await asyncio.to_thread(db.create_client, data, auth.profile_id)

    async def _owned_client(client_id: int, auth: AuthContext) -> Dict[str, Any]:
        client = await asyncio.to_thread(db.get_client, client_id)
        if client is None:
            raise NotFoundError("Client not found")
        auth.require_owner(client["created_by"])
        return client

    @app.put("/api/clients/{client_id}")
    async def update_client(client_id: int, data: Dict[str, Any],
                            auth: AuthContext = Depends(get_auth)):
        await _owned_client(client_id, auth)
        return await asyncio.to_thread(db.update_client, client_id, data)

    @app.delete("/api/clients/{client_id}", status_code=204)
    async def delete_client(client_id: int, auth: AuthContext = Depends(get_auth)):
        await _owned_client(client_id, auth)
        await asyncio.to_thread(db.delete_client, client_id)
        return Response(status_code=204)

    # ==================== Documents ====================

    @app.get("/api/documents")
    async def list_documents(search: Optional[str] = None,
                             document_type: Optional[str] = Query(None, alias="type"),
                             source: Optional[str] = None,
                             auth: AuthContext = Depends(get_auth)):
        return await asyncio.to_thread(
            documents.list, auth, search, document_type, source
        )

    @app.post("/api/documents", status_code=201)
    async def upload_document(file: UploadFile = File(...),
                              document_type: str = Form("other"),
                              description: Optional[str] = Form(None),
                              income_id: Optional[int] = Form(None),
                              expense_id: Optional[int] = Form(None),
                              workshop_id: Optional[int] = Form(None),
                              client_id: Optional[int] = Form(None),
                              auth: AuthContext = Depends(get_auth)):
        content = await file.read()
        return await asyncio.to_thread(
            documents.upload, auth, file.filename or "", content,
            file.content_type, document_type, description,
            income_id=income_id, expense_id=expense_id,
            workshop_id=workshop_id, client_id=client_id,
        )

    @app.get("/api/documents/{document_id}/download")
    async def download_document(document_id: int, auth: AuthContext = Depends(get_auth)):
        document, content = await asyncio.to_thread(documents.read, auth, document_id)
        return Response(
            content=content,
            media_type=document["file_type"] or "application/octet-stream",
            headers=_attachment(document["file_name"]),
        )

    @app.delete("/api/documents/{document_id}", status_code=204)
    async def delete_document(document_id: int, auth: AuthContext = Depends(get_auth)):
        await asyncio.to_thread(documents.delete, auth, document_id)
        return Response(status_code=204)

    # ==================== Analytics ====================

    @app.get("/api/analytics/dashboard")
    async def analytics_dashboard(instructor_id: Optional[int] = None,
                                  reference_year: Optional[int] = None,
                                  auth: AuthContext = Depends(get_auth)):
        data = await fetch_dashboard(db, auth, instructor_id)
        incomes, expenses = data["incomes"], data["expenses"]
        result = {
            "summary": grouping.summarize(incomes, expenses),
            "monthlyTrend": grouping.monthly_trend(incomes, expenses, reference_year),
            "classDistribution": presenters.series_to_dicts(
                presenters.class_distribution(incomes)
            ),
        }
        if auth.is_admin:
            result["instructorPerformance"] = grouping.instructor_performance(
                incomes, data["profiles"]
            )
        return result

    @app.get("/api/analytics/categories")
    async def analytics_categories(auth: AuthContext = Depends(get_auth)):
        data = await fetch_records(db, auth)
        totals = grouping.expenses_by_category(data["expenses"])
        return {
            "totals": totals,
            "chart": presenters.series_to_dicts(
                presenters.chart_series(totals, palette_name="category")
            ),
        }

    @app.get("/api/analytics/classes")
    async def analytics_classes(auth: AuthContext = Depends(get_auth)):
        data = await fetch_records(db, auth)
        stats = grouping.group_stats(
            data["incomes"], "class_type", ["payment", "profit", "guest_count"],
            grouping.OTHER
        )
        return {
            "stats": stats,
            "chart": presenters.series_to_dicts(
                presenters.class_distribution(data["incomes"])
            ),
        }

    @app.get("/api/analytics/platforms")
    async def analytics_platforms(auth: AuthContext = Depends(get_auth)):
        data = await fetch_records(db, auth)
        totals = grouping.income_by_platform(data["incomes"])
        return {
            "totals": totals,
            "chart": presenters.series_to_dicts(presenters.chart_series(totals)),
        }

    @app.get("/api/analytics/monthly")
    async def analytics_monthly(reference_year: Optional[int] = None,
                                auth: AuthContext = Depends(get_auth)):
        data = await fetch_records(db, auth)
        return grouping.monthly_trend(data["incomes"], data["expenses"], reference_year)

    @app.get("/api/analytics/who-paid")
    async def analytics_who_paid(start: Optional[date] = None,
                                 end: Optional[date] = None,
                                 search: Optional[str] = None,
                                 min_total: Optional[float] = None,
                                 sort_by: str = "total", order: str = "desc",
                                 auth: AuthContext = Depends(get_auth)):
        query = _who_paid_query(start, end, search, min_total, sort_by, order)
        data = await fetch_records(db, auth)
        ledger = build_ledger(data["expenses"], data["incomes"], query)
        return {
            "contributors": [c.to_dict() for c in ledger],
            "totals": ledger_totals(ledger),
        }

    @app.get("/api/analytics/insights")
    async def analytics_insights(auth: AuthContext = Depends(get_auth)):
        data = await fetch_records(db, auth)
        return insights.generate_insights(data["incomes"], data["expenses"])

    @app.get("/api/analytics/charts")
    async def analytics_charts(auth: AuthContext = Depends(get_auth)):
        data = await fetch_records(db, auth)
        monthly = presenters.monthly_income_series(data["incomes"])
        current = monthly[-1]["income"] if monthly else 0
        previous = monthly[-2]["income"] if len(monthly) > 1 else 0
        return {
            "monthlyIncome": monthly,
            "growth": presenters.growth_label(current, previous),
            "popularity": presenters.series_to_dicts(
                presenters.workshop_popularity(data["incomes"])
            ),
            "expenseBreakdown": presenters.series_to_dicts(
                presenters.expense_breakdown(data["expenses"])
            ),
        }

    # ==================== Export ====================

    @app.get("/api/export/financial-summary")
    async def export_financial_summary(start: Optional[date] = None,
                                       end: Optional[date] = None,
                                       auth: AuthContext = Depends(get_auth)):
        data = await fetch_records(db, auth, start, end)
        period = "All Time"
        if start or end:
            period = f"{start or '...'} to {end or '...'}"
        result = await asyncio.to_thread(
            financial_summary_pdf, data["incomes"], data["expenses"], period
        )
        return Response(
            content=result.content,
            media_type=result.content_type,
            headers=_attachment(result.filename),
        )

    @app.get("/api/export/{view}")
    async def export(view: str, format: str = "csv",
                     start: Optional[date] = None, end: Optional[date] = None,
                     search: Optional[str] = None,
                     min_total: Optional[float] = None,
                     sort_by: str = "total", order: str = "desc",
                     reference_year: Optional[int] = None,
                     auth: AuthContext = Depends(get_auth)):
        if view in ("who-paid", "contributor"):
            query = _who_paid_query(start, end, search, min_total, sort_by, order)
            data = await fetch_records(db, auth)
            export_data = views.contributor_view(data["expenses"], data["incomes"], query)
        elif view == "client":
            export_data = views.client_view(
                await asyncio.to_thread(db.list_clients, search),
                {"Search": search},
            )
        elif view == "email_notification":
            auth.require_admin()
            export_data = views.notification_view(
                await asyncio.to_thread(db.list_notifications)
            )
        elif view in ("income", "expense", "category", "class_type", "monthly"):
            data = await fetch_records(db, auth, start, end)
            scope = {
                "Scope": "All users" if auth.is_admin else auth.full_name or auth.email,
                "From": start.isoformat() if start else None,
                "To": end.isoformat() if end else None,
            }
            builders = {
                "income": lambda: views.income_view(data["incomes"], scope),
                "expense": lambda: views.expense_view(data["expenses"], scope),
                "category": lambda: views.category_view(data["expenses"], scope),
                "class_type": lambda: views.class_type_view(data["incomes"], scope),
                "monthly": lambda: views.monthly_view(
                    data["incomes"], data["expenses"], reference_year, scope
                ),
            }
            export_data = builders[view]()
        else:
            raise NotFoundError(f"Unknown export view: {view}")

        result = await asyncio.to_thread(export_view, export_data, format)
        return Response(
            content=result.content,
            media_type=result.content_type,
            headers=_attachment(result.filename),
        )

    # ==================== Notifications ====================

    @app.get("/api/notifications")
    async def list_notifications(limit: int = 50, auth: AuthContext = Depends(get_auth)):
        auth.require_admin()
        data = await fetch_all(
            notifications=lambda: db.list_notifications(limit),
            profiles=db.list_profiles,
        )
        names = {p["id"]: p for p in data["profiles"]}
        for n in data["notifications"]:
            profile = names.get(n["user_id"]) or {}
            n["user_name"] = profile.get("full_name")
            n["user_email"] = profile.get("email")
        return data["notifications"]

    @app.post("/api/notifications/test")
    async def test_notification(auth: AuthContext = Depends(get_auth)):
        auth.require_admin()
        sent = await asyncio.to_thread(
            notifier.send, "income", None, auth.profile_id, 100,
            "Test Email Notification", date.today().isoformat(),
        )
        return {"success": sent}

    # ==================== Options ====================

    @app.get("/api/options")
    async def options(auth: AuthContext = Depends(get_auth)):
        return {
            "expenseCategories": business_config.get_expense_categories(),
            "platforms": business_config.get_platforms(),
            "documentTypes": business_config.get_document_types(),
            "allowedFileTypes": business_config.get_allowed_file_types(),
            "maxUploadSize": settings.max_upload_size,
        }

    return app

import calendar
from datetime import datetime, timedelta

from quart import Blueprint, request, jsonify

from bunkerdesk.models import Contact, Call, Email, FuelDeal
from bunkerdesk.database import SessionLocal
from bunkerdesk.constants import PRIORITY_RANK_LABELS
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.logging_utils import timing_logger
from bunkerdesk.utils.activity_chart import build_daily_activity
from bunkerdesk.utils.contact_stats import contact_statistics, priority_board
from bunkerdesk.utils.timezones import world_clock

reports_bp = Blueprint("reports", __name__, url_prefix="/api/dashboard")


def _month_dates(session, column, owner, user_id, start, end):
    rows = session.query(column).filter(owner == user_id, column >= start, column < end).all()
    return [row[0] for row in rows]


@reports_bp.route("/activity-chart", methods=["GET"])
@requires_auth()
@timing_logger("activity_chart")
async def activity_chart():
    """Daily calls/emails/deals for ?year=&month= (default: current month)."""
    user = request.user
    now = datetime.utcnow()
    year = request.args.get("year", now.year, type=int)
    month = request.args.get("month", now.month, type=int)
    # The exclusive end bound must stay representable
    if not 1 <= month <= 12 or not 1 <= year <= 9998:
        return jsonify({"error": "Invalid month"}), 400

    start = datetime(year, month, 1)
    end = start + timedelta(days=calendar.monthrange(year, month)[1])

    session = SessionLocal()
    try:
        chart = build_daily_activity(
            _month_dates(session, Call.call_date, Call.user_id, user.id, start, end),
            _month_dates(session, Email.email_date, Email.user_id, user.id, start, end),
            _month_dates(session, FuelDeal.deal_date, FuelDeal.user_id, user.id, start, end),
            year,
            month,
        )
        response = jsonify(chart)
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@reports_bp.route("/contact-stats", methods=["GET"])
@requires_auth()
async def contact_stats():
    user = request.user
    session = SessionLocal()
    try:
        contacts = session.query(Contact).filter(Contact.user_id == user.id).all()
        response = jsonify(contact_statistics(contacts))
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@reports_bp.route("/priority-board", methods=["GET"])
@requires_auth()
async def get_priority_board():
    user = request.user
    session = SessionLocal()
    try:
        contacts = session.query(Contact).filter(
            Contact.user_id == user.id,
            Contact.priority_rank.between(1, 5)
        ).all()
        board = priority_board(contacts)
        return jsonify({
            rank: {
                "label": PRIORITY_RANK_LABELS[int(rank)],
                "contacts": [
                    {
                        "id": c.id,
                        "name": c.name,
                        "company": c.company,
                        "country": c.country,
                        "timezone": c.timezone,
                        "is_client": c.is_client,
                        "has_traction": c.has_traction,
                    } for c in members
                ],
            } for rank, members in board.items()
        })
    finally:
        session.close()


@reports_bp.route("/timezones", methods=["GET"])
@requires_auth()
async def timezones():
    now = datetime.utcnow()
    response = jsonify({"utc": now.isoformat() + "Z", "zones": world_clock(now)})
    response.headers["Cache-Control"] = "no-store"
    return response

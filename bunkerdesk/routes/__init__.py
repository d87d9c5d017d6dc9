from bunkerdesk.routes.auth import auth_bp
from bunkerdesk.routes.contacts import contacts_bp
from bunkerdesk.routes.vessels import vessels_bp
from bunkerdesk.routes.communications import communications_bp
from bunkerdesk.routes.fuel_deals import fuel_deals_bp
from bunkerdesk.routes.tasks import tasks_bp
from bunkerdesk.routes.goals import goals_bp
from bunkerdesk.routes.call_schedules import call_schedules_bp
from bunkerdesk.routes.suppliers import suppliers_bp
from bunkerdesk.routes.notes import notes_bp
from bunkerdesk.routes.preferences import preferences_bp
from bunkerdesk.routes.reports import reports_bp
from bunkerdesk.routes.reminders import reminders_bp
from bunkerdesk.routes.realtime import realtime_bp
from bunkerdesk.routes.workspaces import workspaces_bp
from bunkerdesk.routes.contact_groups import contact_groups_bp
from bunkerdesk.routes.utils import utils_bp


def register_blueprints(app):
    app.register_blueprint(auth_bp)
    app.register_blueprint(contacts_bp)
    app.register_blueprint(vessels_bp)
    app.register_blueprint(communications_bp)
    app.register_blueprint(fuel_deals_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(goals_bp)
    app.register_blueprint(call_schedules_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(notes_bp)
    app.register_blueprint(preferences_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(reminders_bp)
    app.register_blueprint(realtime_bp)
    app.register_blueprint(workspaces_bp)
    app.register_blueprint(contact_groups_bp)
    app.register_blueprint(utils_bp)

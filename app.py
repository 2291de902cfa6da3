import sys
import logging
from rich.logging import RichHandler
from flask import Flask, render_template, redirect, url_for, session, g
from asgiref.wsgi import WsgiToAsgi

from config import SECRET_KEY, MAX_FILE_SIZE
from portal.errors import StoreError
from portal.models import init_db, Profile
from portal.session import PortalSession
from routes.auth_routes import auth_bp
from routes.student_routes import student_bp
from routes.teacher_routes import teacher_bp
from routes.guards import current_session, dashboard_endpoint

# Configure rich logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)

logging.root.handlers = [
    RichHandler(rich_tracebacks=True, show_path=True, tracebacks_show_locals=False,
                log_time_format="[%b %d, %Y, %I:%M:%S %p]",
                )
]
logger = logging.getLogger("feedback_portal")

app = Flask(__name__)
app.secret_key = SECRET_KEY
app.config['MAX_CONTENT_LENGTH'] = MAX_FILE_SIZE

# Register blueprints
app.register_blueprint(auth_bp)
app.register_blueprint(student_bp)
app.register_blueprint(teacher_bp)

asgi_app = WsgiToAsgi(app)


@app.before_request
def load_portal_session():
    g.portal_session = PortalSession(session, Profile.get)
    g.portal_session.refresh()


@app.context_processor
def inject_user():
    portal_session = g.get('portal_session')
    return {'current_user': portal_session.profile if portal_session else None}


@app.errorhandler(StoreError)
def handle_store_error(error):
    logger.error(f"Unhandled database error: {error}")
    return render_template('error.html', message="Something went wrong. Please try again."), 500


@app.errorhandler(404)
def handle_not_found(error):
    return render_template('not_found.html', what="Page"), 404


@app.route("/")
def index():
    portal_session = current_session()
    if not portal_session.is_authenticated:
        return redirect(url_for('auth.login'))
    return redirect(url_for(dashboard_endpoint(portal_session.profile)))


if __name__ == "__main__":
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized")

    if len(sys.argv) > 1 and sys.argv[1] == '--init-db':
        sys.exit(0)

    import uvicorn
    import socket
    host_ip = socket.gethostbyname(socket.gethostname())
    logger.info(f"Starting server on {host_ip}:5000")
    uvicorn.run(asgi_app, host=host_ip, port=5000, log_config=None)

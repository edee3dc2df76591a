import os
import signal
import atexit
from flask import Flask, jsonify, abort, request

from core import settings
from core.core_api import AuthError
from core.data_manager import DataManager
from core.plugin_manager import PluginManager

# --- Flask App Initialization ---
app = Flask(__name__)
app.json.ensure_ascii = False

# --- Core Services Initialization ---
data_manager = DataManager(
    settings.DATA_DIR,
    lock_timeout=settings.LOCK_TIMEOUT_SECONDS,
    retry_base_delay=settings.LOCK_RETRY_BASE_DELAY,
)
plugin_manager = PluginManager(settings.PLUGINS_DIR, app, data_manager, history_limit=settings.HISTORY_LIMIT)
atexit.register(lambda: _perform_graceful_shutdown('atexit'))
_shutdown_executed = False


def _handle_termination_signal(signum, frame):
    label = {signal.SIGINT: 'SIGINT', signal.SIGTERM: 'SIGTERM'}.get(signum, f'signal {signum}')
    _perform_graceful_shutdown(label)
    signal.signal(signum, signal.SIG_DFL)
    os.kill(os.getpid(), signum)


signal.signal(signal.SIGINT, _handle_termination_signal)
signal.signal(signal.SIGTERM, _handle_termination_signal)


# === Core API Routes ===

@app.route('/')
def index():
    """Thông tin server và các plugin đang hoạt động."""
    return jsonify({
        "status": "ok",
        "plugins": [p.id for p in plugin_manager.get_active_plugins()],
    })

@app.route('/api/plugins/active')
def get_active_plugins_ui():
    """Cung cấp thông tin UI (tab, prefix API) cho frontend để render động."""
    return jsonify(plugin_manager.get_ui_components())

@app.route('/api/auth/token', methods=['POST'])
def handle_generate_token():
    """Tạo một token mới."""
    return plugin_manager.core_api.generate_token()

@app.route('/api/auth/login', methods=['POST'])
def handle_auth_login():
    """Xử lý đăng nhập bằng token đã có."""
    token = (request.get_json(silent=True) or {}).get('token')
    if not token:
        abort(400, "Missing 'token' in request body.")
    return plugin_manager.core_api.login_with_token(token)

@app.route('/api/auth/logout', methods=['POST'])
def handle_auth_logout():
    return plugin_manager.core_api.logout()

@app.errorhandler(AuthError)
def handle_auth_error(e):
    return jsonify({"error": str(e)}), 401


def _perform_graceful_shutdown(reason: str = None):
    global _shutdown_executed
    if _shutdown_executed:
        return

    _shutdown_executed = True
    if reason:
        print(f"[Server] Graceful shutdown requested ({reason}).")
    else:
        print("[Server] Graceful shutdown requested.")

    try:
        plugin_manager.shutdown_all()
    except Exception as plugin_err:
        print(f"[Server] Warning while shutting down plugins: {plugin_err}")


# === Server Initialization ===
def initialize_server():
    """Tải các plugin."""
    plugin_manager.load_plugins()

    print("\n✅ Scoreboard server is ready!")
    print(f"   - Loaded {len(plugin_manager.get_active_plugins())} plugins.")
    print(f"   - Listening on http://{settings.HOST}:{settings.PORT}")


# === Run Server ===
if __name__ == '__main__':
    initialize_server()
    app.run(host=settings.HOST, debug=False, port=settings.PORT, threaded=True)

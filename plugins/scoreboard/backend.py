import math

from flask import Blueprint, jsonify, request

from core.core_api import AuthError
from core.data_manager import StoreBusyError

from .logic.batch import score_batch
from .logic.deduction import RuleFormatError
from .logic.report import format_score_list
from .services.config_store import ConfigValidationError, ScoringConfigStore
from .services.ledger import INVALID_NAME, NAME_CONFLICT, NOT_FOUND, ScoreLedger

_ERROR_STATUS = {NOT_FOUND: 404, NAME_CONFLICT: 409, INVALID_NAME: 400}


class ScoreboardPlugin:
    """
    Backend cho plugin Scoreboard.
    Chấm điểm dữ liệu cược dán vào, giữ bảng điểm theo từng user và lịch sử để rollback.
    """

    def __init__(self, core_api):
        self.core_api = core_api
        self.config_store = ScoringConfigStore(core_api.data_manager)
        self.ledger = ScoreLedger(core_api.data_manager, history_limit=core_api.history_limit)
        self.blueprint = Blueprint('scoreboard', __name__)
        self._register_error_handlers()
        self._register_routes()
        print("[Plugin:Scoreboard] Backend initialized with API routes.")

    def get_blueprint(self):
        return self.blueprint, "/api/plugin/scoreboard"

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _register_error_handlers(self):
        @self.blueprint.errorhandler(AuthError)
        def handle_auth_error(e):
            return jsonify({"success": False, "error": "unauthorized", "message": str(e)}), 401

        @self.blueprint.errorhandler(StoreBusyError)
        def handle_busy(e):
            return jsonify({"success": False, "error": "busy", "retryable": True, "message": str(e)}), 503

    @staticmethod
    def _bad_request(message):
        return jsonify({"success": False, "error": "bad_request", "message": message}), 400

    @staticmethod
    def _ledger_response(result, **extra):
        if result.success:
            return jsonify({"success": True, "message": result.message, **result.data, **extra})
        status = _ERROR_STATUS.get(result.error, 400)
        return jsonify({"success": False, "error": result.error, "message": result.message}), status

    @staticmethod
    def _parse_score(value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0.0
        if isinstance(value, bool):
            raise ValueError("Score must be a number.")
        try:
            score = float(value)
        except (TypeError, ValueError):
            raise ValueError("Score must be a number.")
        if not math.isfinite(score):
            raise ValueError("Score must be a finite number.")
        return score

    # ------------------------------------------------------------------ #
    # Routes
    # ------------------------------------------------------------------ #

    def _register_routes(self):
        bp = self.blueprint

        @bp.route('/config', methods=['GET', 'POST'])
        def handle_config():
            user_hash = self.core_api.verify_token_and_get_user_hash()
            if request.method == 'GET':
                return jsonify({"success": True, "config": self.config_store.get(user_hash)})

            try:
                config = self.config_store.save(user_hash, request.get_json(silent=True))
            except ConfigValidationError as e:
                return jsonify({"success": False, "error": "invalid_config", "message": str(e)}), 400
            return jsonify({"success": True, "config": config, "message": "Config saved."})

        @bp.route('/calculate', methods=['POST'])
        def calculate():
            user_hash = self.core_api.verify_token_and_get_user_hash()
            data = request.get_json(silent=True) or {}
            text = data.get('text')
            hit_number = str(data.get('hitNumber', '')).strip()
            if not isinstance(text, str) or not text.strip():
                return self._bad_request("Missing 'text'.")

            config = self.config_store.get(user_hash)
            try:
                outcome = score_batch(text, hit_number, config)
            except RuleFormatError as e:
                return jsonify({"success": False, "error": "invalid_config", "message": str(e)}), 400
            except ValueError as e:
                return self._bad_request(str(e))

            updated = {}
            if outcome.score_changes:
                updated = self.ledger.apply_calculation(
                    user_hash, outcome.score_changes, hit_number, outcome.total_sum
                )

            current = self.ledger.get_scores(user_hash)
            current.update(updated)
            items = []
            for item in outcome.items:
                payload = item.to_dict()
                payload["totalScore"] = current.get(item.label, 0)
                items.append(payload)

            return jsonify({
                "success": True,
                "hitNumber": hit_number,
                "processedItems": items,
                "results": [r.to_dict() for r in outcome.results],
                "summary": outcome.summary(),
                "scoreChanges": outcome.score_changes,
            })

        @bp.route('/scores', methods=['GET'])
        def list_scores():
            user_hash = self.core_api.verify_token_and_get_user_hash()
            return jsonify({"success": True, "list": self.ledger.list_scores(user_hash)})

        @bp.route('/scores/export', methods=['GET'])
        def export_scores():
            user_hash = self.core_api.verify_token_and_get_user_hash()
            return jsonify({"success": True, "text": format_score_list(self.ledger.list_scores(user_hash))})

        @bp.route('/scores/update', methods=['POST'])
        def update_score():
            user_hash = self.core_api.verify_token_and_get_user_hash()
            data = request.get_json(silent=True) or {}
            try:
                score = self._parse_score(data.get('score'))
            except ValueError as e:
                return self._bad_request(str(e))
            return self._ledger_response(self.ledger.manual_set(user_hash, data.get('name'), score))

        @bp.route('/scores/delete', methods=['POST'])
        def delete_score():
            user_hash = self.core_api.verify_token_and_get_user_hash()
            data = request.get_json(silent=True) or {}
            name = data.get('name')
            if not isinstance(name, str) or not name:
                return self._bad_request("Missing 'name'.")
            return self._ledger_response(self.ledger.delete(user_hash, name))

        @bp.route('/scores/edit', methods=['POST'])
        def edit_score():
            user_hash = self.core_api.verify_token_and_get_user_hash()
            data = request.get_json(silent=True) or {}
            try:
                score = self._parse_score(data.get('score'))
            except ValueError as e:
                return self._bad_request(str(e))
            result = self.ledger.manual_edit(user_hash, data.get('oldName'), data.get('newName'), score)
            return self._ledger_response(result)

        @bp.route('/scores/clear', methods=['POST'])
        def clear_scores():
            user_hash = self.core_api.verify_token_and_get_user_hash()
            return self._ledger_response(self.ledger.clear(user_hash))

        @bp.route('/history', methods=['GET'])
        def list_history():
            user_hash = self.core_api.verify_token_and_get_user_hash()
            return jsonify({"success": True, "history": self.ledger.list_history(user_hash)})

        @bp.route('/history/rollback', methods=['POST'])
        def rollback():
            user_hash = self.core_api.verify_token_and_get_user_hash()
            data = request.get_json(silent=True) or {}
            return self._ledger_response(self.ledger.rollback(user_hash, data.get('versionId')))

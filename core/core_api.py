import hashlib
import uuid

from flask import request, jsonify


class AuthError(Exception):
    """Token thiếu hoặc không hợp lệ."""


class CoreAPI:
    """
    Lớp "hộp cát" (Sandbox) được truyền cho mỗi plugin.
    Plugin chỉ tương tác với lõi qua lớp này: dữ liệu và xác thực.
    """
    USER_DATA_FILE = "user_data.json"

    def __init__(self, data_manager, history_limit=100):
        self.data_manager = data_manager
        self.history_limit = history_limit

    # --- 1. Dịch vụ Dữ liệu (Data Services) ---
    def read_data(self, filename, default_value=None, obfuscated=False):
        """Đọc file JSON từ thư mục dữ liệu một cách an toàn."""
        return self.data_manager.read_json(filename, default_value, obfuscated)

    # --- 2. Dịch vụ Xác thực (Auth Services) ---
    def _known_tokens(self):
        user_data = self.read_data(self.USER_DATA_FILE, default_value={"users": []}, obfuscated=True)
        return user_data.get("users", [])

    def register_token(self, token: str) -> str:
        """Thêm token vào danh sách user; trả về user_hash tương ứng."""
        with self.data_manager.transaction(self.USER_DATA_FILE, default_value={"users": []}, obfuscated=True) as user_data:
            users = user_data.setdefault("users", [])
            if token not in users:
                users.append(token)
        return self.hash_token(token)

    @staticmethod
    def hash_token(token: str) -> str:
        return hashlib.sha256(token.encode('utf-8')).hexdigest()

    def verify_token_and_get_user_hash(self):
        """
        Xác thực token từ header Authorization.
        Trả về user_hash nếu hợp lệ, nếu không sẽ raise AuthError.
        """
        auth_header = request.headers.get('Authorization')
        if not auth_header or not auth_header.startswith('Bearer '):
            raise AuthError("Authorization header is missing or invalid.")
        token = auth_header.split(' ', 1)[1].strip()
        if token and token in self._known_tokens():
            return self.hash_token(token)
        raise AuthError("Invalid token.")

    def generate_token(self):
        """Tạo token mới và lưu vào user_data."""
        new_token = str(uuid.uuid4())
        self.register_token(new_token)
        print("[CoreAPI] Generated new token.")
        return jsonify({"status": "created", "token": new_token})

    def login_with_token(self, token: str):
        """Xác thực một token có tồn tại hay không."""
        if token in self._known_tokens():
            print("[CoreAPI] User with token logged in successfully.")
            return jsonify({"status": "success", "token": token})
        return jsonify({"error": "Invalid token"}), 401

    def logout(self):
        """Client tự xóa token, server không cần làm gì."""
        return jsonify({"status": "success", "message": "Logged out successfully."})

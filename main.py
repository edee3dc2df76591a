import sys
import time
from werkzeug.serving import WSGIRequestHandler


class No200RequestHandler(WSGIRequestHandler):
    def log_request(self, code='-', size='-'):
        # code có thể là str hoặc int; chuẩn hoá về int nếu được
        try:
            code_int = int(code)
        except (TypeError, ValueError):
            return super().log_request(code, size)
        # Bỏ qua 200 và 304 (Not Modified)
        if code_int in (200, 304):
            return
        return super().log_request(code, size)


def main():
    """Khởi chạy server Flask."""
    print(f"[{time.strftime('%H:%M:%S')}] Scoreboard server đang khởi động...")

    try:
        from app import app, initialize_server
        from core import settings
    except ImportError as e:
        print(f"LỖI NGHIÊM TRỌNG: Không thể import ứng dụng Flask. Lỗi: {e}")
        print("Có thể một số thư viện chưa được cài đặt. Hãy chạy: pip install -e .")
        sys.exit(1)

    initialize_server()
    app.run(host=settings.HOST, debug=False, port=settings.PORT, threaded=True, request_handler=No200RequestHandler)


if __name__ == "__main__":
    main()

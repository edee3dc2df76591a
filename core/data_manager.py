import os
import copy
import json
import threading
import base64
import time
import tempfile
from contextlib import contextmanager


class StoreBusyError(RuntimeError):
    """Raised when a data file stays locked past the retry window. Safe to retry."""


class DataManager:
    """
    Đọc/ghi dữ liệu JSON an toàn (thread-safe) cho toàn bộ server.
    Mỗi file có một Lock riêng; việc chờ lock có giới hạn thời gian để
    request không bao giờ bị treo vô hạn.
    """
    def __init__(self, cache_dir, lock_timeout=5.0, retry_base_delay=0.01):
        self.cache_dir = cache_dir
        self.lock_timeout = lock_timeout
        self.retry_base_delay = retry_base_delay
        self._locks = {}
        self._locks_guard = threading.Lock()
        self.B64_PREFIX = "b64:"
        os.makedirs(self.cache_dir, exist_ok=True)

    def get_path(self, filename: str) -> str:
        """Lấy đường dẫn đầy đủ tới file trong thư mục dữ liệu."""
        return os.path.join(self.cache_dir, filename)

    def _get_lock(self, filename: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(filename, threading.Lock())

    @contextmanager
    def _locked(self, filename: str):
        """Giữ lock của file, thử lại với backoff cho tới khi hết `lock_timeout`."""
        lock = self._get_lock(filename)
        deadline = time.monotonic() + self.lock_timeout
        delay = self.retry_base_delay
        while not lock.acquire(timeout=delay):
            if time.monotonic() >= deadline:
                print(f"⚠️ [DataManager] Timed out waiting for lock on {filename}.")
                raise StoreBusyError(f"Data file '{filename}' is busy, please retry.")
            delay = min(delay * 2, 0.5)
        try:
            yield
        finally:
            lock.release()

    # --- Mã hóa/giải mã Base64 cho dữ liệu người dùng ---
    def _encode_string_b64(self, s: str) -> str:
        encoded = base64.b64encode(s.encode('utf-8')).decode('utf-8')
        return f"{self.B64_PREFIX}{encoded}"

    def _decode_string_b64(self, s: str) -> str:
        if s.startswith(self.B64_PREFIX):
            try:
                b64_part = s[len(self.B64_PREFIX):]
                return base64.b64decode(b64_part.encode('utf-8')).decode('utf-8')
            except ValueError:
                # Chuỗi hỏng thì trả về nguyên bản
                return s
        return s

    def _process_data_recursive(self, data, process_func):
        if isinstance(data, dict):
            return {
                process_func(k): self._process_data_recursive(v, process_func)
                for k, v in data.items()
            }
        elif isinstance(data, list):
            return [self._process_data_recursive(item, process_func) for item in data]
        elif isinstance(data, str):
            return process_func(data)
        return data

    # --- Thao tác file không khóa (gọi bên trong `_locked`) ---
    def _read_unlocked(self, filename, default_value, obfuscated):
        path = self.get_path(filename)
        if not os.path.exists(path):
            return default_value
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError):
            print(f"⚠️ [DataManager] Could not read or decode {path}. Returning default.")
            return default_value
        if obfuscated:
            return self._process_data_recursive(data, self._decode_string_b64)
        return data

    def _write_unlocked(self, data, filename, obfuscated):
        path = self.get_path(filename)
        directory = os.path.dirname(path)
        os.makedirs(directory, exist_ok=True)
        data_to_save = data
        if obfuscated:
            data_to_save = self._process_data_recursive(data, self._encode_string_b64)
        # Ghi ra file tạm rồi os.replace để không bao giờ để lại file ghi dở.
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.tmp_', suffix='.json')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data_to_save, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    # --- API công khai ---
    def read_json(self, filename, default_value=None, obfuscated=False):
        default_value = {} if default_value is None else default_value
        with self._locked(filename):
            return self._read_unlocked(filename, default_value, obfuscated)

    def save_json(self, data, filename, obfuscated=False):
        with self._locked(filename):
            try:
                self._write_unlocked(data, filename, obfuscated)
                return True
            except IOError as e:
                print(f"💥 [DataManager] CRITICAL ERROR: Could not write data to {self.get_path(filename)}. Error: {e}")
                return False

    def load_user_data(self, filename, user_hash, default_value=None, obfuscated=False):
        """Đọc dữ liệu của một user cụ thể từ một file JSON chung."""
        all_data = self.read_json(filename, default_value={}, obfuscated=obfuscated)
        return all_data.get(user_hash, {} if default_value is None else default_value)

    def save_user_data(self, data_to_save, filename, user_hash, obfuscated=False):
        """Lưu dữ liệu cho một user, giữ nguyên dữ liệu của các user khác."""
        with self._locked(filename):
            all_data = self._read_unlocked(filename, {}, obfuscated)
            all_data[user_hash] = data_to_save
            try:
                self._write_unlocked(all_data, filename, obfuscated)
                return True
            except IOError as e:
                print(f"💥 [DataManager] CRITICAL ERROR: Could not write data to {self.get_path(filename)}. Error: {e}")
                return False

    @contextmanager
    def transaction(self, filename, default_value=None, obfuscated=False):
        """
        Read-modify-write trên một file dưới cùng một lock.
        Block `with` nhận dữ liệu (dict) và sửa trực tiếp; khi thoát bình thường
        dữ liệu được ghi lại nguyên khối nếu có thay đổi. Nếu block raise, không có gì được ghi.
        """
        with self._locked(filename):
            data = self._read_unlocked(filename, {} if default_value is None else default_value, obfuscated)
            snapshot = copy.deepcopy(data)
            yield data
            if data != snapshot:
                self._write_unlocked(data, filename, obfuscated)

import os
import json
import importlib.util
import sys

from colorama import Fore, Style, init as colorama_init

from .core_api import CoreAPI

colorama_init()


class Plugin:
    def __init__(self, path, metadata, backend_instance):
        self.path = path
        self.metadata = metadata
        self.backend = backend_instance
        self.id = metadata.get("id", os.path.basename(path))
        self.full_module_path = None
        self.blueprint_name = None
        self.url_prefix = None


class PluginManager:
    def __init__(self, plugins_dir, app, data_manager, history_limit=100):
        self.plugins_dir = plugins_dir
        self.app = app
        self.data_manager = data_manager
        self.core_api = CoreAPI(data_manager, history_limit=history_limit)
        self._plugins = {}
        self._color_enabled = sys.stdout.isatty() or bool(os.environ.get("FORCE_COLOR"))

    def load_plugins(self):
        print("[PluginManager] Starting plugin discovery and initialization...")
        os.makedirs(self.plugins_dir, exist_ok=True)
        loaded_plugins = []
        failed_plugins = []

        for entry in sorted(os.scandir(self.plugins_dir), key=lambda e: e.name):
            if not entry.is_dir() or entry.name.startswith(("_", ".")):
                continue
            success, display_name = self._load_plugin_from_path(entry.path)
            if success:
                loaded_plugins.append(display_name)
            else:
                failed_plugins.append(display_name)

        success_text = ", ".join(loaded_plugins) if loaded_plugins else "None"
        failure_text = ", ".join(failed_plugins) if failed_plugins else "None"
        print(f"[PluginManager] Loaded successfully: {self._color_text(success_text, Fore.GREEN)}")
        print(f"[PluginManager] Failed to load: {self._color_text(failure_text, Fore.RED)}")

    def _load_plugin_from_path(self, path):
        plugin_id = os.path.basename(path)
        manifest_path = os.path.join(path, "plugin.json")
        if not os.path.exists(manifest_path):
            print(f"[PluginManager] Skipping '{plugin_id}': missing plugin.json.")
            return False, plugin_id

        metadata = {}
        full_module_path = ""

        try:
            with open(manifest_path, "r", encoding="utf-8") as f:
                metadata = json.load(f)

            display_name = metadata.get("name", plugin_id)
            backend_entry = metadata.get("entry_points", {}).get("backend")
            if not backend_entry:
                raise ValueError("Plugin manifest is missing backend entry point.")

            module_name, class_name = backend_entry.split(":")
            full_module_path = f"plugins.{plugin_id}.{module_name}"

            module_spec = importlib.util.spec_from_file_location(
                full_module_path,
                os.path.join(path, f"{module_name}.py"),
            )
            if not module_spec or not module_spec.loader:
                raise ImportError(f"Unable to load module spec for '{full_module_path}'.")

            module = importlib.util.module_from_spec(module_spec)
            sys.modules[full_module_path] = module
            module_spec.loader.exec_module(module)

            plugin_class = getattr(module, class_name)
            backend_instance = plugin_class(self.core_api)
            if not hasattr(backend_instance, "plugin_id"):
                backend_instance.plugin_id = plugin_id

            blueprint_name = None
            url_prefix = None
            if hasattr(backend_instance, "get_blueprint"):
                blueprint, url_prefix = backend_instance.get_blueprint()
                if blueprint:
                    self.app.register_blueprint(blueprint, url_prefix=url_prefix)
                    blueprint_name = blueprint.name

            plugin_obj = Plugin(path, metadata, backend_instance)
            plugin_obj.full_module_path = full_module_path
            plugin_obj.blueprint_name = blueprint_name
            plugin_obj.url_prefix = url_prefix

            self._plugins[plugin_id] = plugin_obj
            return True, display_name

        except Exception as e:
            if full_module_path in sys.modules:
                del sys.modules[full_module_path]
            display_name = metadata.get("name", plugin_id) or plugin_id
            print(f"[PluginManager] Error loading plugin '{plugin_id}': {e}")
            return False, display_name

    def _color_text(self, text, color_code):
        if not text or not self._color_enabled:
            return text
        return f"{color_code}{text}{Style.RESET_ALL}"

    def get_plugin_by_id(self, plugin_id):
        return self._plugins.get(plugin_id)

    def get_active_plugins(self):
        return list(self._plugins.values())

    def get_ui_components(self):
        ui_data = []
        for plugin in sorted(
            self._plugins.values(), key=lambda p: p.metadata.get("ui", {}).get("order", 99)
        ):
            if "ui" in plugin.metadata:
                ui_data.append(
                    {
                        "id": plugin.id,
                        "name": plugin.metadata.get("name"),
                        "ui": plugin.metadata["ui"],
                        "url_prefix": plugin.url_prefix,
                    }
                )
        return ui_data

    def shutdown_all(self):
        print("[PluginManager] Shutting down plugins...")
        for plugin in self._plugins.values():
            backend = plugin.backend
            if callable(getattr(backend, "shutdown", None)):
                try:
                    backend.shutdown()
                except Exception as e:
                    print(f"[PluginManager] Warning: plugin '{plugin.id}' failed during shutdown: {e}")

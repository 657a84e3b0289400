# cellar/modules/config.py

import configparser
import os

DEFAULT_RECIPES_DIR = "/usr/cellar/recipes"
DEFAULT_INSTALLED_DB = "/var/lib/cellar/installed_db.json"
DEFAULT_TAPS_CONFIG = "/etc/cellar/taps.yaml"
DEFAULT_TAPS_DIR = "/var/lib/cellar/taps"


def _default_locations():
    locations = []
    env_path = os.environ.get("CELLAR_CONFIG")
    if env_path:
        locations.append(env_path)
    locations.extend([
        "/etc/cellar/cellar.conf",
        os.path.expanduser("~/.config/cellar/cellar.conf"),
    ])
    return locations


class CellarConfig:
    def __init__(self, locations=None, strict=False):
        self.locations = locations or _default_locations()
        self.strict = strict
        self.config = configparser.ConfigParser()
        self.loaded_from = None
        self.reload()

    def reload(self):
        """(Re)load configuration from the first existing file."""
        self.config = configparser.ConfigParser()
        self.loaded_from = None
        for path in self.locations:
            if os.path.isfile(path):
                self.config.read(path)
                self.loaded_from = path
                return
        if self.strict:
            raise FileNotFoundError(f"No configuration file found in: {self.locations}")

    def get(self, section, option, fallback=None):
        try:
            return self.config.get(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return fallback

    def getboolean(self, section, option, fallback=False):
        try:
            return self.config.getboolean(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getint(self, section, option, fallback=0):
        try:
            return self.config.getint(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getlist(self, section, option, fallback=None, delimiter=","):
        raw = self.get(section, option, fallback="")
        if raw:
            return [item.strip() for item in raw.split(delimiter) if item.strip()]
        return fallback or []

    # -------------------------
    # [cellar] locations
    # -------------------------
    @property
    def recipes_dir(self):
        return os.path.expanduser(self.get("cellar", "recipes_dir", fallback=DEFAULT_RECIPES_DIR))

    @property
    def installed_db(self):
        return os.path.expanduser(self.get("cellar", "installed_db", fallback=DEFAULT_INSTALLED_DB))

    @property
    def taps_config(self):
        return os.path.expanduser(self.get("cellar", "taps_config", fallback=DEFAULT_TAPS_CONFIG))

    @property
    def taps_dir(self):
        return os.path.expanduser(self.get("cellar", "taps_dir", fallback=DEFAULT_TAPS_DIR))

    def __getitem__(self, section):
        if section in self.config:
            return dict(self.config[section])
        raise KeyError(f"Section '{section}' not found.")

    def __contains__(self, section):
        return section in self.config


# shared instance used by the other modules
config = CellarConfig()

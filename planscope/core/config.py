"""
Application configuration management using Pydantic Settings
"""

import sys
import os
import json
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from planscope.core.constants import APP_NAME, CONFIG_FILE, DEFAULT_MAX_TREE_DEPTH
from planscope.core.exceptions import InvalidSettingsError


def get_app_dir() -> Path:
    """
    Get application data directory (OS-specific user data folder)
    """
    if sys.platform == 'win32':
        base = Path(os.environ.get('LOCALAPPDATA', Path.home() / 'AppData' / 'Local'))
    elif sys.platform == 'darwin':
        base = Path.home() / 'Library' / 'Application Support'
    else:
        base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))
    
    return base / APP_NAME


def ensure_app_dirs(app_dir: Optional[Path] = None) -> Path:
    """Create necessary application directories"""
    app_dir = app_dir or get_app_dir()
    
    (app_dir / 'config').mkdir(parents=True, exist_ok=True)
    (app_dir / 'logs').mkdir(parents=True, exist_ok=True)
    
    return app_dir


class ParserSettings(BaseSettings):
    """Showplan parser settings"""
    
    # RelOps nested deeper than this are not expanded
    max_tree_depth: int = Field(default=DEFAULT_MAX_TREE_DEPTH, ge=16, le=400)


class AnalysisSettings(BaseSettings):
    """Plan rule analyzer thresholds"""
    
    row_estimate_ratio: float = Field(default=10.0, gt=1.0)
    critical_estimate_factor: float = Field(default=100.0, gt=1.0)
    excessive_grant_ratio: float = Field(default=10.0, gt=1.0)
    excessive_grant_min_kb: int = Field(default=1024, ge=0)
    grant_wait_critical_ms: int = Field(default=5000, ge=1)
    parallel_skew_ratio: float = Field(default=0.9, gt=0.0, le=1.0)
    parallel_skew_min_threads: int = Field(default=4, ge=2)
    predicate_preview_length: int = Field(default=200, ge=20, le=10000)


class LoggingSettings(BaseSettings):
    """Logging settings"""
    
    level: str = Field(default="INFO")
    file_enabled: bool = Field(default=False)
    retention_days: int = Field(default=7, ge=1, le=30)
    console_colors: bool = Field(default=True)
    
    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v = v.upper()
        if v not in valid_levels:
            v = 'INFO'
        return v


class Settings(BaseSettings):
    """Main application settings"""
    
    model_config = SettingsConfigDict(
        env_prefix='PLANSCOPE_',
        env_nested_delimiter='__',
        extra='ignore',
    )
    
    # Sub-settings
    parser: ParserSettings = Field(default_factory=ParserSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    
    # App paths
    app_dir: Path = Field(default_factory=get_app_dir)
    
    @property
    def config_dir(self) -> Path:
        return self.app_dir / 'config'
    
    @property
    def logs_dir(self) -> Path:
        return self.app_dir / 'logs'
    
    @property
    def settings_file(self) -> Path:
        return self.config_dir / CONFIG_FILE
    
    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """Save settings to JSON file"""
        if path is None:
            ensure_app_dirs(self.app_dir)
            path = self.settings_file
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        
        data = self.model_dump(exclude={'app_dir'}, mode='json')
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, default=str)
        return path
    
    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None, strict: bool = False) -> 'Settings':
        """
        Load settings from JSON file
        
        Args:
            path: Settings file, defaults to ``<app_dir>/config/settings.json``
            strict: Raise InvalidSettingsError instead of falling back to defaults
        """
        settings_file = Path(path) if path is not None else get_app_dir() / 'config' / CONFIG_FILE
        
        if not settings_file.exists():
            return cls()
        
        try:
            with open(settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("settings root must be a JSON object")
            return cls(**data)
        except (OSError, ValueError, ValidationError) as e:
            if strict:
                raise InvalidSettingsError(f"Cannot load settings: {e}", path=str(settings_file))
            # If loading fails, return defaults
            return cls()


# Global settings instance (cached)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance (singleton)"""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings() -> Settings:
    """Drop the cached settings and rebuild them from defaults and environment"""
    global _settings
    _settings = Settings()
    return _settings

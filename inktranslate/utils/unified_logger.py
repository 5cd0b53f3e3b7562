"""
Unified logging system for InkTranslate
Provides consistent console output and a callback bridge for the core modules
"""
import sys
import os
from datetime import datetime
from typing import Optional, Dict, Any, Callable
from enum import Enum


class LogLevel(Enum):
    """Log levels with priority values"""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class LogType(Enum):
    """Types of log messages for special handling"""
    GENERAL = "general"
    LLM_REQUEST = "llm_request"
    LLM_RESPONSE = "llm_response"
    PROGRESS = "progress"
    CHAPTER_START = "chapter_start"
    CHAPTER_END = "chapter_end"
    TRANSLATION_START = "translation_start"
    TRANSLATION_END = "translation_end"
    ERROR_DETAIL = "error_detail"


class Colors:
    """ANSI color codes for terminal output - simplified to 3 colors"""
    # Check if colors should be disabled
    NO_COLOR = os.environ.get('NO_COLOR') is not None or not sys.stdout.isatty()

    YELLOW = '' if NO_COLOR else '\033[93m'  # LLM requests, warnings
    WHITE = '' if NO_COLOR else '\033[97m'   # Main text
    GRAY = '' if NO_COLOR else '\033[90m'    # Technical details
    ENDC = '' if NO_COLOR else '\033[0m'     # Reset

    @classmethod
    def disable(cls):
        """Disable all colors"""
        cls.YELLOW = cls.WHITE = cls.GRAY = cls.ENDC = ''


class UnifiedLogger:
    """
    Unified logger that provides consistent logging across the CLI and the core
    """

    def __init__(self,
                 name: str = "InkTranslate",
                 console_output: bool = True,
                 enable_colors: bool = True,
                 min_level: LogLevel = LogLevel.INFO,
                 output: Optional[Callable[[str], None]] = None,
                 storage_callback: Optional[Callable] = None):
        """
        Initialize the unified logger

        Args:
            name: Logger name/identifier
            console_output: Whether to output to console
            enable_colors: Whether to use colored output
            min_level: Minimum log level to display
            output: Line writer used for console output (defaults to print)
            storage_callback: Callback receiving every structured log entry
        """
        self.name = name
        self.console_output = console_output
        self.enable_colors = enable_colors
        self.min_level = min_level
        self.output = output or print
        self.storage_callback = storage_callback

        # Translation state
        self.translation_state = {
            'current_chapter': 0,
            'total_chapters': 0,
            'title': '',
            'source_lang': '',
            'target_lang': '',
            'model': '',
            'start_time': None,
            'in_progress': False
        }

        if not enable_colors:
            Colors.disable()

    def _format_timestamp(self) -> str:
        """Format current timestamp"""
        return datetime.now().strftime("%H:%M:%S")

    def _format_console_message(self, level: LogLevel, message: str,
                                log_type: LogType = LogType.GENERAL,
                                data: Optional[Dict[str, Any]] = None) -> str:
        """Format message for console output"""
        timestamp = self._format_timestamp()

        level_colors = {
            LogLevel.DEBUG: Colors.GRAY,
            LogLevel.INFO: Colors.WHITE,
            LogLevel.WARNING: Colors.YELLOW,
            LogLevel.ERROR: Colors.WHITE,
            LogLevel.CRITICAL: Colors.WHITE
        }
        color = level_colors.get(level, Colors.WHITE)

        if log_type == LogType.LLM_REQUEST:
            return self._format_llm_request(data or {})
        elif log_type == LogType.LLM_RESPONSE:
            return self._format_llm_response(data or {})
        elif log_type == LogType.PROGRESS:
            return self._format_progress(data or {})
        elif log_type == LogType.CHAPTER_START:
            return self._format_chapter_start(data or {})
        elif log_type == LogType.CHAPTER_END:
            return self._format_chapter_end(data or {})
        elif log_type == LogType.TRANSLATION_START:
            return self._format_translation_start(data or {})
        elif log_type == LogType.TRANSLATION_END:
            return self._format_translation_end(data or {})
        elif log_type == LogType.ERROR_DETAIL:
            return self._format_error_detail(message, data or {})
        else:
            level_str = f"[{level.name}]" if level != LogLevel.INFO else ""
            return f"{color}[{timestamp}] {level_str} {message}{Colors.ENDC}"

    def _format_llm_request(self, data: Dict[str, Any]) -> str:
        """Format LLM request with full details"""
        output = []
        output.append(f"{Colors.YELLOW}{'=' * 80}{Colors.ENDC}")
        output.append(f"{Colors.YELLOW}[{self._format_timestamp()}] SENDING TO LLM{Colors.ENDC}")
        if 'model' in data:
            output.append(f"{Colors.GRAY}Model: {data['model']}{Colors.ENDC}")
        output.append(f"\n{Colors.WHITE}RAW PAYLOAD:{Colors.ENDC}")
        output.append(f"{Colors.WHITE}{data.get('prompt', '')}{Colors.ENDC}")
        return '\n'.join(output)

    def _format_llm_response(self, data: Dict[str, Any]) -> str:
        """Format LLM response with full details"""
        output = []
        output.append(f"{Colors.WHITE}[{self._format_timestamp()}] LLM RESPONSE{Colors.ENDC}")
        if 'execution_time' in data:
            output.append(f"{Colors.GRAY}Execution time: {data['execution_time']:.2f} seconds{Colors.ENDC}")
        output.append(f"\n{Colors.WHITE}RAW RESPONSE:{Colors.ENDC}")
        output.append(f"{Colors.WHITE}{data.get('response', '')}{Colors.ENDC}")
        return '\n'.join(output)

    def _format_progress(self, data: Dict[str, Any]) -> str:
        """Format progress summary"""
        percentage = data.get('percentage', 0)
        current = data.get('current', self.translation_state['current_chapter'])
        total = data.get('total', self.translation_state['total_chapters'])

        bar_length = 30
        filled = int(bar_length * percentage / 100)
        bar = '█' * filled + '░' * (bar_length - filled)
        return (f"{Colors.WHITE}PROGRESS: {current}/{total} chapters{Colors.ENDC}\n"
                f"{Colors.WHITE}[{bar}] {percentage:.1f}%{Colors.ENDC}")

    def _format_chapter_start(self, data: Dict[str, Any]) -> str:
        self.translation_state['current_chapter'] = data.get('index', self.translation_state['current_chapter'] + 1)
        current = self.translation_state['current_chapter']
        total = self.translation_state['total_chapters']
        return (f"{Colors.GRAY}{'-' * 80}{Colors.ENDC}\n"
                f"{Colors.WHITE}[{self._format_timestamp()}] CHAPTER {current}/{total}: {data.get('path', '')}{Colors.ENDC}")

    def _format_chapter_end(self, data: Dict[str, Any]) -> str:
        line = (f"{Colors.WHITE}[{self._format_timestamp()}] Chapter done: "
                f"{data.get('succeeded_chunks', 0)}/{data.get('total_chunks', 0)} chunks translated{Colors.ENDC}")
        if data.get('failed_chunks', 0) > 0:
            line += f"\n{Colors.YELLOW}Failed chunks: {data['failed_chunks']}{Colors.ENDC}"
        return line

    def _format_translation_start(self, data: Dict[str, Any]) -> str:
        """Format translation start message"""
        self.translation_state.update({
            'title': data.get('title', 'Unknown'),
            'source_lang': data.get('source_lang', 'Unknown'),
            'target_lang': data.get('target_lang', 'Unknown'),
            'model': data.get('model', 'Unknown'),
            'total_chapters': data.get('total_chapters', 0),
            'current_chapter': 0,
            'start_time': datetime.now(),
            'in_progress': True
        })

        output = [f"{Colors.YELLOW}TRANSLATION STARTED{Colors.ENDC}"]
        output.append(f"{Colors.WHITE}Book: {self.translation_state['title']}{Colors.ENDC}")
        output.append(f"{Colors.WHITE}Languages: {self.translation_state['source_lang']} → {self.translation_state['target_lang']}{Colors.ENDC}")
        output.append(f"{Colors.GRAY}Model: {self.translation_state['model']}{Colors.ENDC}")
        if self.translation_state['total_chapters'] > 0:
            output.append(f"{Colors.WHITE}Chapters: {self.translation_state['total_chapters']}{Colors.ENDC}")
        return '\n'.join(output)

    def _format_translation_end(self, data: Dict[str, Any]) -> str:
        """Format translation end message"""
        output = [f"\n{Colors.WHITE}TRANSLATION COMPLETE{Colors.ENDC}"]

        if self.translation_state['start_time']:
            duration = datetime.now() - self.translation_state['start_time']
            output.append(f"{Colors.GRAY}Duration: {duration}{Colors.ENDC}")

        if 'output_file' in data:
            output.append(f"{Colors.WHITE}Output saved to: {data['output_file']}{Colors.ENDC}")

        if 'stats' in data:
            stats = data['stats']
            output.append(f"{Colors.WHITE}Completed chunks: {stats.get('completed_chunks', 0)}/{stats.get('total_chunks', 0)}{Colors.ENDC}")
            if stats.get('failed_chunks', 0) > 0:
                output.append(f"{Colors.YELLOW}Failed chunks: {stats['failed_chunks']}{Colors.ENDC}")
            if stats.get('failed_chapters', 0) > 0:
                output.append(f"{Colors.YELLOW}Skipped chapters: {stats['failed_chapters']}{Colors.ENDC}")

        self.translation_state['in_progress'] = False
        return '\n'.join(output)

    def _format_error_detail(self, message: str, data: Dict[str, Any]) -> str:
        """Format detailed error message"""
        output = [f"{Colors.WHITE}[{self._format_timestamp()}] ERROR: {message}{Colors.ENDC}"]
        if 'details' in data:
            output.append(f"{Colors.GRAY}Details: {data['details']}{Colors.ENDC}")
        if 'chapter' in data:
            output.append(f"{Colors.GRAY}Chapter: {data['chapter']}{Colors.ENDC}")
        return '\n'.join(output)

    def log(self, level: LogLevel, message: str,
            log_type: LogType = LogType.GENERAL,
            data: Optional[Dict[str, Any]] = None):
        """
        Main logging method

        Args:
            level: Log level
            message: Log message
            log_type: Type of log for special formatting
            data: Additional data for the log entry
        """
        if level.value < self.min_level.value:
            return

        if self.console_output:
            console_msg = self._format_console_message(level, message, log_type, data)
            if console_msg:
                self.output(console_msg)

        if self.storage_callback:
            self.storage_callback({
                'timestamp': datetime.now().isoformat(),
                'level': level.name,
                'type': log_type.value,
                'message': message,
                'data': data or {}
            })

    # Convenience methods
    def debug(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.DEBUG, message, log_type, data)

    def info(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.INFO, message, log_type, data)

    def warning(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.WARNING, message, log_type, data)

    def error(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.ERROR, message, log_type, data)

    def critical(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.CRITICAL, message, log_type, data)

    def create_legacy_callback(self):
        """
        Create a log_callback(key, message, data=None) function for the core
        modules
        """
        structured_types = {
            'llm_request': LogType.LLM_REQUEST,
            'llm_response': LogType.LLM_RESPONSE,
            'progress': LogType.PROGRESS,
            'chapter_start': LogType.CHAPTER_START,
            'chapter_end': LogType.CHAPTER_END,
            'translation_start': LogType.TRANSLATION_START,
            'translation_end': LogType.TRANSLATION_END,
        }

        def legacy_callback(key: str, message: str = "", data: Optional[Dict[str, Any]] = None):
            if data and isinstance(data, dict) and data.get('type') in structured_types:
                log_type = structured_types[data['type']]
                level = LogLevel.DEBUG if log_type in (LogType.LLM_REQUEST, LogType.LLM_RESPONSE) else LogLevel.INFO
                self.log(level, message or key, log_type, data)
            elif "error" in key.lower() or message.startswith("ERROR"):
                self.error(message or key)
            elif "warning" in key.lower() or message.startswith("WARNING"):
                self.warning(message or key)
            else:
                self.info(message or key)

        return legacy_callback


# Global logger instance
_global_logger = None


def get_logger(name: str = "InkTranslate", **kwargs) -> UnifiedLogger:
    """
    Get or create the global logger instance

    Args:
        name: Logger name
        **kwargs: Additional arguments for UnifiedLogger

    Returns:
        UnifiedLogger instance
    """
    global _global_logger
    if _global_logger is None:
        _global_logger = UnifiedLogger(name, **kwargs)
    return _global_logger


def setup_cli_logger(enable_colors: bool = True, verbose: bool = False) -> UnifiedLogger:
    """Setup logger for CLI usage; console lines go through tqdm so progress bars stay intact"""
    from tqdm.auto import tqdm
    return get_logger(
        console_output=True,
        enable_colors=enable_colors,
        min_level=LogLevel.DEBUG if verbose else LogLevel.INFO,
        output=tqdm.write
    )

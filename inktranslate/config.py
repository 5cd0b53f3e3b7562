"""
Centralized configuration class
"""
import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

# LLM Provider configuration
LLM_PROVIDER = os.getenv('LLM_PROVIDER', 'gemini')  # 'gemini' or 'ollama'
GEMINI_API_KEY = os.getenv('GEMINI_API_KEY', '')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-1.5-flash')
API_ENDPOINT = os.getenv('API_ENDPOINT', 'http://localhost:11434/api/generate')
DEFAULT_MODEL = os.getenv('DEFAULT_MODEL', 'mistral-small:24b')

# Request parameters
REQUEST_TIMEOUT = int(os.getenv('REQUEST_TIMEOUT', '120'))
MAX_TRANSLATION_ATTEMPTS = int(os.getenv('MAX_TRANSLATION_ATTEMPTS', '2'))
RETRY_DELAY_SECONDS = int(os.getenv('RETRY_DELAY_SECONDS', '2'))
TRANSLATION_TEMPERATURE = float(os.getenv('TRANSLATION_TEMPERATURE', '0.3'))
MAX_OUTPUT_TOKENS = int(os.getenv('MAX_OUTPUT_TOKENS', '8192'))

# Pipeline parameters
MAX_CHUNK_SIZE = int(os.getenv('MAX_CHUNK_SIZE', '1500'))  # Characters per translation request
CONCURRENCY_LIMIT = int(os.getenv('CONCURRENCY_LIMIT', '2'))

DEFAULT_SOURCE_LANGUAGE = os.getenv('DEFAULT_SOURCE_LANGUAGE', 'English')
DEFAULT_TARGET_LANGUAGE = os.getenv('DEFAULT_TARGET_LANGUAGE', 'Simplified Chinese')

# EPUB-specific configuration
NAMESPACES = {
    'opf': 'http://www.idpf.org/2007/opf',
    'dc': 'http://purl.org/dc/elements/1.1/',
    'xhtml': 'http://www.w3.org/1999/xhtml',
    'epub': 'http://www.idpf.org/2007/ops',
    'container': 'urn:oasis:names:tc:opendocument:xmlns:container'
}

# Matched against local names, so bare HTML and namespaced XHTML behave the same
IGNORED_TAGS = frozenset(['script', 'style', 'meta', 'link'])

BLOCK_TAGS = frozenset(['p', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'li', 'blockquote'])

TRANSLATE_ID_ATTRIBUTE = 'data-translate-id'

CHAPTER_MEDIA_TYPES = ('application/xhtml+xml', 'text/html')


@dataclass
class TranslationConfig:
    """Settings for one book translation run"""

    source_language: str = DEFAULT_SOURCE_LANGUAGE
    target_language: str = DEFAULT_TARGET_LANGUAGE

    # LLM Provider settings
    llm_provider: str = LLM_PROVIDER
    model: str = GEMINI_MODEL
    api_endpoint: str = API_ENDPOINT
    gemini_api_key: str = GEMINI_API_KEY
    custom_instructions: str = ""

    # Pipeline parameters
    max_chunk_size: int = MAX_CHUNK_SIZE
    concurrency_limit: int = CONCURRENCY_LIMIT

    # LLM parameters
    timeout: int = REQUEST_TIMEOUT
    max_attempts: int = MAX_TRANSLATION_ATTEMPTS
    retry_delay: int = RETRY_DELAY_SECONDS
    temperature: float = TRANSLATION_TEMPERATURE

    enable_colors: bool = True

    @classmethod
    def from_cli_args(cls, args) -> 'TranslationConfig':
        """Create config from CLI arguments"""
        provider = getattr(args, 'provider', LLM_PROVIDER)
        model = getattr(args, 'model', None) or (GEMINI_MODEL if provider == 'gemini' else DEFAULT_MODEL)
        return cls(
            source_language=args.source_lang,
            target_language=args.target_lang,
            llm_provider=provider,
            model=model,
            api_endpoint=getattr(args, 'api_endpoint', API_ENDPOINT),
            gemini_api_key=getattr(args, 'gemini_api_key', GEMINI_API_KEY),
            custom_instructions=getattr(args, 'custom_instructions', ''),
            max_chunk_size=getattr(args, 'chunksize', MAX_CHUNK_SIZE),
            concurrency_limit=getattr(args, 'concurrency', CONCURRENCY_LIMIT),
            timeout=getattr(args, 'timeout', REQUEST_TIMEOUT),
            enable_colors=not getattr(args, 'no_color', False)
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for logging, with the API key masked"""
        masked_key = f"{self.gemini_api_key[:4]}..." if self.gemini_api_key else ""
        return {
            'source_language': self.source_language,
            'target_language': self.target_language,
            'llm_provider': self.llm_provider,
            'model': self.model,
            'api_endpoint': self.api_endpoint,
            'gemini_api_key': masked_key,
            'custom_instructions': self.custom_instructions,
            'max_chunk_size': self.max_chunk_size,
            'concurrency_limit': self.concurrency_limit,
            'timeout': self.timeout,
            'max_attempts': self.max_attempts,
            'retry_delay': self.retry_delay,
            'temperature': self.temperature
        }

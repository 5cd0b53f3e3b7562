"""
Post-processing module for cleaning raw LLM responses.
Provides extensible cleaning operations applied before JSON decoding.
"""
import re
from typing import List, Dict
from abc import ABC, abstractmethod


class PostProcessingRule(ABC):
    """Abstract base class for post-processing rules"""

    @abstractmethod
    def apply(self, text: str) -> str:
        """Apply the cleaning rule to the text"""
        pass

    @abstractmethod
    def description(self) -> str:
        """Return a description of what this rule does"""
        pass


class StripByteOrderMarkRule(PostProcessingRule):
    """Remove a leading BOM and surrounding whitespace"""

    def apply(self, text: str) -> str:
        return text.lstrip('\ufeff').strip()

    def description(self) -> str:
        return "Strip BOM and surrounding whitespace"


class StripMarkdownFenceRule(PostProcessingRule):
    """Remove ```json ... ``` fences some models wrap around JSON output"""

    _fence_pattern = re.compile(r'^```[A-Za-z]*\s*\n?(.*?)\n?```$', re.DOTALL)

    def apply(self, text: str) -> str:
        match = self._fence_pattern.match(text.strip())
        if match:
            return match.group(1).strip()
        return text

    def description(self) -> str:
        return "Remove markdown code fences"


class ExtractJsonArrayRule(PostProcessingRule):
    """Drop prose before the first '[' and after the last ']'"""

    def apply(self, text: str) -> str:
        if text.startswith('['):
            return text
        start = text.find('[')
        end = text.rfind(']')
        if start != -1 and end > start:
            return text[start:end + 1]
        return text

    def description(self) -> str:
        return "Keep only the outermost JSON array"


class PostProcessor:
    """Main post-processor that applies all registered rules"""

    def __init__(self):
        self.rules: List[PostProcessingRule] = []
        self._initialize_default_rules()

    def _initialize_default_rules(self):
        """Add default cleaning rules"""
        self.add_rule(StripByteOrderMarkRule())
        self.add_rule(StripMarkdownFenceRule())
        self.add_rule(ExtractJsonArrayRule())

    def add_rule(self, rule: PostProcessingRule):
        """Add a new post-processing rule"""
        self.rules.append(rule)

    def remove_rule(self, rule_type: type):
        """Remove a rule by its type"""
        self.rules = [r for r in self.rules if not isinstance(r, rule_type)]

    def process(self, text: str) -> str:
        """
        Apply all post-processing rules to the text

        Args:
            text: The raw response to clean

        Returns:
            The cleaned text
        """
        if not text:
            return text

        result = text
        for rule in self.rules:
            result = rule.apply(result)
        return result

    def get_rules(self) -> List[Dict[str, str]]:
        """Get a list of all active rules and their descriptions"""
        return [
            {
                "name": rule.__class__.__name__,
                "description": rule.description()
            }
            for rule in self.rules
        ]


# Create a default instance
default_post_processor = PostProcessor()


def clean_raw_response(text: str) -> str:
    """Clean a raw LLM response with the default rules"""
    return default_post_processor.process(text)

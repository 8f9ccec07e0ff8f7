# src/template_auditor/rules/registry.py
import logging
from typing import Dict, List, Mapping, Optional, Tuple, Type

from .core import Rule, RuleConfig
from .accessibility.avoid_generic_link_text_counter import AvoidGenericLinkTextCounter
from .accessibility.iframe_has_title import IframeHasTitle
from .accessibility.no_title_attribute import NoTitleAttribute

logger = logging.getLogger(__name__)

# Every rule the auditor ships with. New rules are added here.
RULES: Tuple[Type[Rule], ...] = (
    AvoidGenericLinkTextCounter,
    IframeHasTitle,
    NoTitleAttribute,
)


class RuleRegistry:
    """
    Central registry of audit rules.

    Rules are registered explicitly from RULES; instances are built per audit run
    from the per-rule configuration.
    """

    _rules: Dict[str, Type[Rule]] = {}
    _loaded: bool = False

    @classmethod
    def load(cls) -> None:
        if cls._loaded:
            return
        for rule_class in RULES:
            cls.register(rule_class)
        cls._loaded = True

    @classmethod
    def register(cls, rule_class: Type[Rule]) -> None:
        if rule_class.rule_id in cls._rules and cls._rules[rule_class.rule_id] is not rule_class:
            raise ValueError(f"Duplicate rule id '{rule_class.rule_id}'")
        cls._rules[rule_class.rule_id] = rule_class
        logger.debug("Registered rule %s", rule_class.rule_id)

    @classmethod
    def all(cls) -> List[Type[Rule]]:
        """Returns all registered rule classes in registration order."""
        cls.load()
        return list(cls._rules.values())

    @classmethod
    def get(cls, rule_id: str) -> Type[Rule]:
        """
        Retrieves a rule class by its identifier.

        Raises:
            KeyError: If no rule is registered under that identifier.
        """
        cls.load()
        try:
            return cls._rules[rule_id]
        except KeyError:
            raise KeyError(f"Unknown rule '{rule_id}'. Known rules: {', '.join(cls._rules)}") from None

    @classmethod
    def get_all_rule_ids(cls) -> List[str]:
        cls.load()
        return list(cls._rules)

    @classmethod
    def build(
            cls,
            configs: Optional[Mapping[str, RuleConfig]] = None,
            only: Optional[List[str]] = None
    ) -> List[Rule]:
        """
        Instantiates the enabled rules.

        Args:
            configs: Per-rule configuration keyed by rule id; missing rules use defaults.
            only: Restrict the run to these rule ids (validated against the registry).
        """
        configs = configs or {}
        selected = [cls.get(rule_id) for rule_id in only] if only else cls.all()

        rules = []
        for rule_class in selected:
            config = configs.get(rule_class.rule_id) or RuleConfig()
            if not config.enabled:
                logger.debug("Rule %s is disabled by configuration.", rule_class.rule_id)
                continue
            rules.append(rule_class(config))
        return rules

"""
Chain Catalog - цепочки вопросов по языкам

Цепочка (урок) - упорядоченный набор вопросов со своими
вступлением, поздравлением, AI промптами и fallback текстом анализа.

Данные лежат в chains/<locale>.json:

    {
      "chains": {
        "1": {
          "title": "...",
          "intro": "...",
          "congrats": "...",
          "questions": ["...", "..."],
          "prompts": {"system": "...", "user": "...", "qa_line": "..."},
          "fallback": "..."
        }
      }
    }
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.exceptions import ChainNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_QA_LINE = "{{ number }}. {{ question }}\n{{ answer }}"


@dataclass(frozen=True)
class AIPrompts:
    """Шаблоны промптов для глубокого анализа"""
    system: str
    user: str
    qa_line: str = DEFAULT_QA_LINE


@dataclass(frozen=True)
class ChainConfig:
    """Конфигурация одной цепочки вопросов"""
    chain_id: str
    language: str
    title: str
    intro: str
    congrats: str
    questions: List[str]
    prompts: AIPrompts
    fallback: str
    export_labels: Dict[str, str] = field(default_factory=dict)

    @property
    def question_count(self) -> int:
        return len(self.questions)


class ChainCatalog:
    """Read-only каталог цепочек: язык → chain_id → ChainConfig"""

    def __init__(self, chains: Dict[str, Dict[str, ChainConfig]]):
        self._chains = chains

    @classmethod
    def load(cls, chains_dir: Optional[str] = None) -> "ChainCatalog":
        """Загрузка всех chains/<locale>.json"""
        if chains_dir is None:
            chains_dir = Path(__file__).parent / "chains"

        chains_path = Path(chains_dir)
        raw: Dict[str, Any] = {}

        for json_file in sorted(chains_path.glob("*.json")):
            with json_file.open('r', encoding='utf-8') as f:
                raw[json_file.stem] = json.load(f)
            logger.debug(f"Loaded chains for {json_file.stem}")

        catalog = cls.from_dict(raw)
        logger.info(f"📚 ChainCatalog loaded: {catalog.summary()}")
        return catalog

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainCatalog":
        """Построение каталога из словаря {locale: {"chains": {...}}}"""
        chains: Dict[str, Dict[str, ChainConfig]] = {}

        for language, language_data in data.items():
            chains[language] = {}
            for chain_id, chain_data in language_data.get("chains", {}).items():
                prompts = chain_data.get("prompts", {})
                chains[language][str(chain_id)] = ChainConfig(
                    chain_id=str(chain_id),
                    language=language,
                    title=chain_data.get("title", str(chain_id)),
                    intro=chain_data.get("intro", ""),
                    congrats=chain_data.get("congrats", ""),
                    questions=list(chain_data["questions"]),
                    prompts=AIPrompts(
                        system=prompts.get("system", ""),
                        user=prompts.get("user", "{{ qa_text }}"),
                        qa_line=prompts.get("qa_line", DEFAULT_QA_LINE),
                    ),
                    fallback=chain_data.get("fallback", ""),
                    export_labels=dict(chain_data.get("export_labels", {})),
                )

        return cls(chains)

    def languages(self) -> List[str]:
        return [lang for lang, chains in self._chains.items() if chains]

    def chain_ids(self, language: str) -> List[str]:
        chains = self._chains.get(language)
        if not chains:
            raise ChainNotFoundError(language)
        return list(chains.keys())

    def default_chain(self, language: str) -> str:
        return self.chain_ids(language)[0]

    def has_chain(self, language: str, chain_id: str) -> bool:
        return str(chain_id) in self._chains.get(language, {})

    def get_chain_config(self, language: str, chain_id: str) -> ChainConfig:
        try:
            return self._chains[language][str(chain_id)]
        except KeyError:
            raise ChainNotFoundError(language, chain_id)

    def get_questions(self, language: str, chain_id: str) -> List[str]:
        return list(self.get_chain_config(language, chain_id).questions)

    def summary(self) -> Dict[str, List[str]]:
        return {lang: list(chains.keys()) for lang, chains in self._chains.items()}

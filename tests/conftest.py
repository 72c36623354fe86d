"""Общие фикстуры для unit тестов опроса"""

import pytest
from unittest.mock import AsyncMock

from subject_bot.messages import ChainCatalog, MessageService
from systems.survey import SessionStore, SurveyTransport


def make_chain(questions, title="Lesson", fallback="fallback analysis", **extra):
    chain = {
        "title": title,
        "intro": f"{title} intro",
        "congrats": f"{title} congrats",
        "questions": list(questions),
        "prompts": {
            "system": "You are a coach.",
            "user": "Answers:\n{{ qa_text }}",
            "qa_line": "{{ number }}) {{ question }} -> {{ answer }}"
        },
        "fallback": fallback,
    }
    chain.update(extra)
    return chain


@pytest.fixture
def single_chain_catalog():
    """Один язык, одна цепочка из двух вопросов"""
    return ChainCatalog.from_dict({
        "ru": {"chains": {"1": make_chain(["A?", "B?"])}}
    })


@pytest.fixture
def multi_chain_catalog():
    """Два языка, по две цепочки"""
    return ChainCatalog.from_dict({
        "ru": {"chains": {
            "1": make_chain(["A?", "B?"], title="Урок 1"),
            "2": make_chain(["C?"], title="Урок 2"),
        }},
        "en": {"chains": {
            "1": make_chain(["One?", "Two?"], title="Lesson 1"),
            "2": make_chain(["Three?"], title="Lesson 2"),
        }},
    })


@pytest.fixture
def messages():
    """Реальные шаблоны из пакета"""
    return MessageService()


@pytest.fixture
def transport():
    """Mock транспорта: все отправки успешны"""
    mock = AsyncMock(spec=SurveyTransport)
    mock.send_text.return_value = True
    mock.send_typing.return_value = True
    mock.send_file.return_value = True
    return mock


@pytest.fixture
def store():
    return SessionStore(timeout_minutes=30, sweep_interval_minutes=10)


@pytest.fixture
def sent_texts(transport):
    """Все тексты, отправленные через send_text"""
    return lambda: [c.args[1] for c in transport.send_text.call_args_list]

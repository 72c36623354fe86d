"""
Unit Tests: Question Flow Engine

Тестирует машину состояний опроса:
- Старт, выбор языка и цепочки
- Приём и отклонение ответов
- Переход к анализу и финальные сообщения
- Перезапуск, сохранение, импорт транскрипта
- Последовательная обработка событий одного чата
"""

import asyncio
import pytest
from unittest.mock import AsyncMock

from subject_bot.ai import SummaryService
from subject_bot.messages import ChainCatalog
from systems.survey import (
    ExportResult,
    QAPair,
    QuestionFlowEngine,
    SessionStatus,
    TranscriptExporter,
)

from conftest import make_chain

CHAT_ID = 42


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def catalog():
    """ru и en, по одной цепочке"""
    return ChainCatalog.from_dict({
        "ru": {"chains": {"1": make_chain(["A?", "B?"])}},
        "en": {"chains": {"1": make_chain(["One?", "Two?"])}},
    })


@pytest.fixture
def summary():
    mock = AsyncMock(spec=SummaryService)
    mock.generate_summary.return_value = "deep analysis text"
    return mock


@pytest.fixture
def exporter(store, messages, transport):
    return TranscriptExporter(store, messages, transport)


def build_engine(store, catalog, messages, summary, transport, exporter, **kwargs):
    params = dict(
        max_answer_length=4000,
        answer_delay=0,
        default_language="ru",
        languages=["ru", "en"],
    )
    params.update(kwargs)
    return QuestionFlowEngine(
        store=store,
        catalog=catalog,
        messages=messages,
        summary=summary,
        transport=transport,
        exporter=exporter,
        **params
    )


@pytest.fixture
def engine(store, catalog, messages, summary, transport, exporter):
    return build_engine(store, catalog, messages, summary, transport, exporter)


def question_prompts(texts):
    return [t for t in texts if t.startswith("📝")]


# ============================================================================
# SCENARIOS
# ============================================================================

@pytest.mark.asyncio
async def test_full_survey_scenario(engine, store, summary, sent_texts):
    """
    Тест: start → ru → "first" → "second" → анализ → COMPLETED
    """
    await engine.handle_start(CHAT_ID)
    assert engine.get_status(CHAT_ID) == SessionStatus.AWAITING_SELECTION

    await engine.handle_language_select(CHAT_ID, "ru")
    assert await engine.handle_answer(CHAT_ID, "first") is True
    assert await engine.handle_answer(CHAT_ID, "second") is True

    session = store.get(CHAT_ID)
    assert session.answers == [QAPair("A?", "first"), QAPair("B?", "second")]
    assert session.summary == "deep analysis text"
    assert session.status == SessionStatus.COMPLETED

    prompts = question_prompts(sent_texts())
    assert len(prompts) == 2
    assert "A?" in prompts[0] and "1" in prompts[0]
    assert "B?" in prompts[1]

    summary.generate_summary.assert_awaited_once_with(session.answers, "ru", "1")


@pytest.mark.asyncio
async def test_too_long_answer_is_rejected_then_retry_accepted(engine, store, sent_texts):
    """
    Тест: второй ответ 5000 символов → отклонён, cursor=1, повтор вопроса B
    """
    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "ru")
    await engine.handle_answer(CHAT_ID, "first")

    accepted = await engine.handle_answer(CHAT_ID, "x" * 5000)

    session = store.get(CHAT_ID)
    assert accepted is False
    assert session.cursor == 1
    assert session.answers == [QAPair("A?", "first")]

    texts = sent_texts()
    assert "4000" in texts[-2]
    assert "B?" in texts[-1]

    assert await engine.handle_answer(CHAT_ID, "second") is True
    assert session.answers[-1] == QAPair("B?", "second")
    assert session.status == SessionStatus.COMPLETED


@pytest.mark.asyncio
async def test_answer_at_max_length_is_accepted(engine, store):
    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "ru")

    assert await engine.handle_answer(CHAT_ID, "y" * 4000) is True
    assert store.get(CHAT_ID).cursor == 1


@pytest.mark.asyncio
async def test_summary_sequence_and_keyboard(engine, transport, sent_texts):
    """
    Тест: после последнего ответа - ожидание, typing, анализ, поздравление, кнопки
    """
    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "ru")
    await engine.handle_answer(CHAT_ID, "first")
    await engine.handle_answer(CHAT_ID, "second")

    texts = sent_texts()
    assert texts[-4].startswith("⏳")
    assert "deep analysis text" in texts[-3]
    assert texts[-2] == "Lesson congrats"
    assert texts[-1].startswith("💾")

    transport.send_typing.assert_awaited_once_with(CHAT_ID)

    keyboard = transport.send_text.call_args_list[-1].kwargs["reply_markup"]
    callbacks = [button.callback_data for row in keyboard.inline_keyboard for button in row]
    assert callbacks == ["save_results", "restart"]


@pytest.mark.asyncio
async def test_summary_markdown_is_sanitized(engine, summary, sent_texts):
    summary.generate_summary.return_value = "## Итог\n**важно** и snake_case"

    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "ru")
    await engine.handle_answer(CHAT_ID, "first")
    await engine.handle_answer(CHAT_ID, "second")

    analysis = sent_texts()[-3]
    assert "**" not in analysis
    assert "*важно*" in analysis
    assert "snake\\_case" in analysis


@pytest.mark.asyncio
async def test_fallback_summary_still_completes(store, catalog, messages, transport, exporter):
    """
    Тест: без API ключа анализ = fallback, сессия всё равно COMPLETED
    """
    summary = SummaryService(catalog=catalog, api_key=None)
    engine = build_engine(store, catalog, messages, summary, transport, exporter)

    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "ru")
    await engine.handle_answer(CHAT_ID, "first")
    await engine.handle_answer(CHAT_ID, "second")

    session = store.get(CHAT_ID)
    assert session.summary == "fallback analysis"
    assert session.status == SessionStatus.COMPLETED


# ============================================================================
# INPUT HANDLING
# ============================================================================

@pytest.mark.asyncio
async def test_answer_without_session_reports_expiry(engine, transport, sent_texts):
    accepted = await engine.handle_answer(CHAT_ID, "hello")

    assert accepted is False
    assert sent_texts() == [engine.messages.get_message('session_expired', 'ru')]
    assert engine.store.get(CHAT_ID) is None


@pytest.mark.asyncio
async def test_command_text_is_ignored(engine, transport):
    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "ru")
    transport.send_text.reset_mock()

    assert await engine.handle_answer(CHAT_ID, "/help") is False

    transport.send_text.assert_not_awaited()
    assert engine.store.get(CHAT_ID).cursor == 0


@pytest.mark.asyncio
async def test_text_before_selection_is_ignored(engine, store, transport):
    await engine.handle_start(CHAT_ID)
    transport.send_text.reset_mock()

    assert await engine.handle_answer(CHAT_ID, "too early") is False

    transport.send_text.assert_not_awaited()
    assert store.get(CHAT_ID).answers == []


@pytest.mark.asyncio
async def test_text_after_completion_is_ignored(engine, store, summary):
    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "ru")
    await engine.handle_answer(CHAT_ID, "first")
    await engine.handle_answer(CHAT_ID, "second")

    assert await engine.handle_answer(CHAT_ID, "more") is False
    assert len(store.get(CHAT_ID).answers) == 2
    summary.generate_summary.assert_awaited_once()


@pytest.mark.asyncio
async def test_back_to_back_answers_are_serialized(store, catalog, messages, summary, transport, exporter):
    """
    Тест: два ответа одновременно → второй ждёт и идёт на следующий вопрос
    """
    engine = build_engine(store, catalog, messages, summary, transport, exporter, answer_delay=0.01)
    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "ru")

    await asyncio.gather(
        engine.handle_answer(CHAT_ID, "first"),
        engine.handle_answer(CHAT_ID, "second"),
    )

    session = store.get(CHAT_ID)
    assert session.answers == [QAPair("A?", "first"), QAPair("B?", "second")]
    summary.generate_summary.assert_awaited_once()


@pytest.mark.asyncio
async def test_slow_summary_does_not_block_other_chats(store, catalog, messages, summary, transport, exporter):
    """
    Тест: пока чат A ждёт анализ, ответ чата B принимается сразу
    """
    other_chat = CHAT_ID + 1
    release = asyncio.Event()

    async def slow_summary(answers, language, chain):
        await release.wait()
        return "deep analysis text"

    summary.generate_summary.side_effect = slow_summary
    engine = build_engine(store, catalog, messages, summary, transport, exporter)

    for chat_id in (CHAT_ID, other_chat):
        await engine.handle_start(chat_id)
        await engine.handle_language_select(chat_id, "ru")

    await engine.handle_answer(CHAT_ID, "first")
    in_flight = asyncio.create_task(engine.handle_answer(CHAT_ID, "second"))
    await asyncio.sleep(0)
    assert engine.get_status(CHAT_ID) == SessionStatus.SUMMARIZING

    accepted = await asyncio.wait_for(engine.handle_answer(other_chat, "hello"), timeout=1)

    assert accepted is True
    assert not in_flight.done()
    assert store.get(other_chat).answers == [QAPair("A?", "hello")]

    release.set()
    assert await in_flight is True
    assert engine.get_status(CHAT_ID) == SessionStatus.COMPLETED


@pytest.mark.asyncio
async def test_pacing_delay_does_not_block_other_chats(store, catalog, messages, summary, transport, exporter):
    engine = build_engine(store, catalog, messages, summary, transport, exporter, answer_delay=0.5)

    for chat_id in (CHAT_ID, CHAT_ID + 1):
        await engine.handle_start(chat_id)
        await engine.handle_language_select(chat_id, "ru")

    in_flight = asyncio.create_task(engine.handle_answer(CHAT_ID, "first"))
    await asyncio.sleep(0)

    # Чат B тоже ждёт свою паузу, но не паузу чата A
    started = asyncio.get_running_loop().time()
    assert await engine.handle_answer(CHAT_ID + 1, "hello") is True
    elapsed = asyncio.get_running_loop().time() - started

    assert elapsed < 0.9
    assert await in_flight is True


@pytest.mark.asyncio
async def test_chats_without_session_leave_no_locks(engine, store):
    """
    Тест: ответы и сохранение в чатах без сессии не копят lock
    """
    for chat_id in range(1000, 1200):
        assert await engine.handle_answer(chat_id, "text") is False
        await engine.save_results(chat_id)

    assert len(store) == 0
    assert store.lock_count == 0


@pytest.mark.asyncio
async def test_unknown_language_is_ignored(engine, store):
    await engine.handle_start(CHAT_ID)

    await engine.handle_language_select(CHAT_ID, "de")

    assert store.get(CHAT_ID).status == SessionStatus.AWAITING_SELECTION


# ============================================================================
# START / CHAINS
# ============================================================================

@pytest.mark.asyncio
async def test_start_shows_language_menu(engine, transport):
    await engine.handle_start(CHAT_ID)

    keyboard = transport.send_text.call_args.kwargs["reply_markup"]
    callbacks = [button.callback_data for row in keyboard.inline_keyboard for button in row]
    assert callbacks == ["lang_ru", "lang_en"]


@pytest.mark.asyncio
async def test_single_language_skips_menu(store, catalog, messages, summary, transport, exporter, sent_texts):
    engine = build_engine(store, catalog, messages, summary, transport, exporter, languages=["ru"])

    await engine.handle_start(CHAT_ID)

    assert engine.get_status(CHAT_ID) == SessionStatus.ANSWERING
    assert sent_texts()[0] == "Lesson intro"
    assert len(question_prompts(sent_texts())) == 1


@pytest.mark.asyncio
async def test_multi_chain_flow(store, multi_chain_catalog, messages, summary, transport, exporter, sent_texts):
    """
    Тест: язык → меню уроков → урок 2 → кнопка старта → вопрос 1 из 1
    """
    engine = build_engine(store, multi_chain_catalog, messages, summary, transport, exporter)

    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "en")

    keyboard = transport.send_text.call_args.kwargs["reply_markup"]
    callbacks = [button.callback_data for row in keyboard.inline_keyboard for button in row]
    assert callbacks == ["start_chain_1", "start_chain_2"]
    assert store.get(CHAT_ID).language == "en"

    await engine.handle_chain_select(CHAT_ID, "2")
    session = store.get(CHAT_ID)
    assert session.chain == "2"
    assert session.status == SessionStatus.AWAITING_SELECTION
    assert "Lesson 2 intro" in sent_texts()

    await engine.handle_start_questions(CHAT_ID)
    assert session.status == SessionStatus.ANSWERING
    assert "Three?" in sent_texts()[-1]


@pytest.mark.asyncio
async def test_chain_switch_resets_answers(store, multi_chain_catalog, messages, summary, transport, exporter):
    engine = build_engine(store, multi_chain_catalog, messages, summary, transport, exporter)
    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "ru")
    await engine.handle_chain_select(CHAT_ID, "1")
    await engine.handle_start_questions(CHAT_ID)
    await engine.handle_answer(CHAT_ID, "first")

    await engine.handle_chain_select(CHAT_ID, "2")

    session = store.get(CHAT_ID)
    assert session.answers == []
    assert session.questions == ["C?"]


@pytest.mark.asyncio
async def test_unknown_chain_is_ignored(store, multi_chain_catalog, messages, summary, transport, exporter):
    engine = build_engine(store, multi_chain_catalog, messages, summary, transport, exporter)
    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "ru")

    await engine.handle_chain_select(CHAT_ID, "99")

    assert store.get(CHAT_ID).chain is None


@pytest.mark.asyncio
async def test_start_questions_without_session(engine, sent_texts):
    await engine.handle_start_questions(CHAT_ID)

    assert sent_texts() == [engine.messages.get_message('session_expired', 'ru')]


# ============================================================================
# RESTART / SAVE
# ============================================================================

@pytest.mark.asyncio
async def test_restart_clears_previous_answers(engine, store):
    """
    Тест: restart → свежая сессия без старых ответов
    """
    await engine.handle_start(CHAT_ID)
    await engine.handle_language_select(CHAT_ID, "ru")
    await engine.handle_answer(CHAT_ID, "first")

    await engine.handle_restart(CHAT_ID)

    session = store.get(CHAT_ID)
    assert session is not None
    assert session.answers == []
    assert session.cursor == 0
    assert session.summary is None


@pytest.mark.asyncio
async def test_save_results_delegates_to_exporter(store, catalog, messages, summary, transport):
    exporter = AsyncMock(spec=TranscriptExporter)
    exporter.export.return_value = ExportResult.DELIVERED
    engine = build_engine(store, catalog, messages, summary, transport, exporter)

    result = await engine.save_results(CHAT_ID)

    assert result == ExportResult.DELIVERED
    exporter.export.assert_awaited_once_with(CHAT_ID)


# ============================================================================
# IMPORT
# ============================================================================

@pytest.mark.asyncio
async def test_import_transcript_runs_summary(engine, store, summary, sent_texts):
    text = "Вопрос 1: Кто вы?\nОтвет: Я\n\nВопрос 2: Где вы?\nОтвет: Здесь\n"

    assert await engine.import_transcript(CHAT_ID, text) is True

    session = store.get(CHAT_ID)
    assert session.answers == [QAPair("Кто вы?", "Я"), QAPair("Где вы?", "Здесь")]
    assert session.status == SessionStatus.COMPLETED
    summary.generate_summary.assert_awaited_once_with(session.answers, "ru", None)
    assert any("2" in t and t.startswith("📥") for t in sent_texts())


@pytest.mark.asyncio
async def test_import_without_pairs_creates_no_session(engine, store, summary, sent_texts):
    assert await engine.import_transcript(CHAT_ID, "just some notes") is False

    assert store.get(CHAT_ID) is None
    summary.generate_summary.assert_not_awaited()
    assert sent_texts() == [engine.messages.get_message('import_empty', 'ru')]

"""Command line entry point."""
import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from .config.settings import AppSettings, get_settings
from .forecast.savings import top_expense_categories
from .llm.categorizer import ProviderCategorizer
from .llm.client import GeminiClient
from .llm.dialogue import DialogueOracle
from .llm.guided_flow import GuidedFlowOracle
from .llm.roadmap_generator import RoadmapGenerator
from .llm.statement_analyzer import StatementAnalyzer
from .onboarding.machine import Affordance
from .onboarding.objectives import general_objective_names
from .onboarding.session import OnboardingSession
from .onboarding.state import StateStore
from .pipeline import PipelineResult, StatementPipeline
from .roadmap.module_chat import ModuleChatSession
from .roadmap.tracker import RoadmapTracker
from .utils.exceptions import ConfigError, HormiwitaError
from .utils.logger import configure_logging, get_logger, set_session_context

logger = get_logger()

EXIT_COMMANDS = {"/salir", "/exit", "/quit"}


def _load_settings() -> AppSettings:
    settings = get_settings()
    is_valid, message = settings.validate()
    if not is_valid:
        raise ConfigError(f"Invalid configuration: {message}")

    log_dir = Path(settings.log_dir) if settings.log_dir else None
    configure_logging(settings.log_level, log_dir, settings.log_max_file_size_mb, settings.log_backup_count)
    return settings


def _create_client(settings: AppSettings, offline: bool) -> Optional[GeminiClient]:
    if offline:
        logger.info("Offline mode: LLM calls disabled")
        return None
    return GeminiClient(settings=settings)


def _print_result(result: PipelineResult) -> None:
    summary = result.summary
    print(f"\nArchivo: {result.file_name}")
    print(f"Estado: {summary.status.value}")
    print(f"Resumen: {summary.feedback}")

    if result.enhanced is None:
        return

    currency = summary.detected_currency or "EUR"
    print(f"\nIngresos totales: {summary.total_income} {currency}")
    print(f"Gastos totales:   {summary.total_expenses} {currency}")
    if result.degraded:
        print("(Algunas categorías son provisionales: la categorización automática no estuvo disponible)")

    print(f"\n{'Proveedor':<35} {'Categoría':<40} {'Total':>12} {'Nº':>4}")
    print("-" * 94)
    for item in (result.enhanced.categorized_income_items or ()) + (result.enhanced.categorized_expense_items or ()):
        print(
            f"{item.provider_name[:35]:<35} {item.suggested_category[:40]:<40} "
            f"{item.total_amount:>12} {item.transaction_count:>4}"
        )

    top = top_expense_categories(result.enhanced.categorized_expense_items)
    if top:
        print("\nPrincipales gastos por categoría:")
        for category, amount in top:
            print(f"  {category:<45} {amount:>12} {currency}")

    savings = result.savings
    print("\nAhorro mensual estimado:")
    print(f"  Simple:   {savings.simple:.2f} {currency}")
    print(f"  Moderado: {savings.moderate:.2f} {currency}")
    print(f"  Máximo:   {savings.max:.2f} {currency}")
    for detail in savings.max_details:
        print(f"    - {detail.description}: -{detail.amount_removed:.2f} ({detail.percentage_removed:.0f}%)")

    print(f"\n{'Mes':<10} {'Simple':>10} {'Moderado':>10} {'Máximo':>10}")
    for row in result.forecast:
        print(f"{row['month']:<10} {row['ahorroSimple']:>10} {row['ahorroModerado']:>10} {row['ahorroMaximo']:>10}")


async def analyze_command(path: Path, settings: AppSettings, offline: bool) -> int:
    """Analyze one statement file and print categories, savings and forecast."""
    if not path.exists():
        print(f"✗ File not found: {path}")
        return 1

    client = _create_client(settings, offline)
    pipeline = StatementPipeline(
        StatementAnalyzer(client, settings.upload_max_bytes),
        ProviderCategorizer(client, fuzzy_threshold=settings.provider_fuzzy_threshold),
        settings.language
    )
    result = await pipeline.process_file(path)
    _print_result(result)
    return 0 if result.summary.status.allows_categorization else 2


async def _ask(prompt: str) -> str:
    return (await asyncio.to_thread(input, prompt)).strip()


def _choose(options: Sequence[str], answer: str) -> List[str]:
    """Map '1,3' style answers to option names."""
    chosen = []
    for part in answer.replace(" ", "").split(","):
        if part.isdigit() and 1 <= int(part) <= len(options):
            chosen.append(options[int(part) - 1])
    return chosen


def _print_new_messages(session: OnboardingSession, shown: int) -> int:
    messages = session.state.messages
    for message in messages[shown:]:
        if message.role.value == "assistant":
            print(f"\nHormi: {message.content}")
    if session.state.notice:
        print(f"\n! {session.state.notice}")
    return len(messages)


async def _run_guided_flow(client: GeminiClient, session: OnboardingSession) -> None:
    store = StateStore(session.state.profile)
    tracker = RoadmapTracker(store)
    if tracker.roadmap is None:
        roadmap = await RoadmapGenerator(client).generate(store.get().name, store.get().specific_objectives)
        tracker.set_roadmap(roadmap)
        print(f"\nHormi: {roadmap.introduction}")
        for index, step in enumerate(roadmap.steps, 1):
            print(f"  {index}. {step.title} ({step.objective})")

    step = tracker.activate_next_step()
    if step is None:
        print("\nNo hay pasos pendientes en tu plan.")
        return

    print(f"\n== {step.title} == (escribe /terminar para completar este objetivo)")
    chat = ModuleChatSession(
        step.flow_identifier,
        GuidedFlowOracle(client),
        store.get(),
        on_chunk=lambda chunk: print(chunk, end="", flush=True)
    )
    print("\nHormi: ", end="")
    await chat.open()
    while True:
        text = await _ask("\nTú: ")
        if text == "/terminar" or text in EXIT_COMMANDS:
            chat.close()
            tracker.complete_step(step.objective)
            break
        print("\nHormi: ", end="")
        await chat.send(text)

    session.store.replace(replace(session.state, profile=store.get()))


async def chat_command(settings: AppSettings, offline: bool) -> int:
    """Run the onboarding conversation in the terminal."""
    if offline:
        print("✗ The chat needs the Gemini API; run without --offline")
        return 1

    client = _create_client(settings, offline)
    session = OnboardingSession(DialogueOracle(client), history_window=settings.history_window)
    pipeline = StatementPipeline(
        StatementAnalyzer(client, settings.upload_max_bytes),
        ProviderCategorizer(client, fuzzy_threshold=settings.provider_fuzzy_threshold),
        settings.language
    )
    last_result: Optional[PipelineResult] = None

    print("Comandos: /reiniciar, /plan, /salir")
    await session.start()
    shown = _print_new_messages(session, 0)

    while True:
        mode = session.affordance

        if mode == Affordance.GENERAL_OBJECTIVES:
            options = general_objective_names()
            for index, name in enumerate(options, 1):
                print(f"  {index}. {name}")
            answer = await _ask("\nElige objetivos generales (ej. 1,3): ")
            if answer in EXIT_COMMANDS:
                break
            await session.submit_general_objectives(_choose(options, answer))

        elif mode == Affordance.SPECIFIC_OBJECTIVES:
            options = [specific.name for specific in session.specific_objective_options()]
            for index, name in enumerate(options, 1):
                print(f"  {index}. {name}")
            answer = await _ask("\nElige objetivos concretos (ej. 2,5, vacío para ninguno): ")
            if answer in EXIT_COMMANDS:
                break
            await session.submit_specific_objectives(_choose(options, answer))

        elif mode == Affordance.UPLOAD:
            answer = await _ask("\nRuta del extracto CSV: ")
            if answer in EXIT_COMMANDS:
                break
            path = Path(answer).expanduser()
            if not path.exists():
                print(f"✗ File not found: {path}")
                continue
            last_result = await pipeline.process_file(path)
            _print_result(last_result)
            if last_result.enhanced is None:
                continue
            if (await _ask("\n¿Confirmas este análisis? (s/n): ")).lower().startswith("s"):
                await session.confirm_analysis(last_result.enhanced)

        elif mode == Affordance.CONFIRMATION:
            answer = await _ask("\n¿Aceptas el resumen? (s/n o escribe un mensaje): ")
            if answer in EXIT_COMMANDS:
                break
            if answer.lower() in ("s", "si", "sí"):
                await session.accept_summary()
            else:
                await session.send_message(answer)

        else:
            text = await _ask("\nTú: ")
            if text in EXIT_COMMANDS:
                break
            if text == "/reiniciar":
                await session.reset()
                shown = 0
            elif text == "/plan":
                await _run_guided_flow(client, session)
            else:
                await session.send_message(text)

        shown = _print_new_messages(session, shown)

    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point for the Hormiwita CLI."""
    load_dotenv()

    parser = argparse.ArgumentParser(description="Hormiwita personal finance assistant")
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--offline",
        action="store_true",
        help="Skip LLM calls (local aggregation and fallback categories)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser("analyze", parents=[common], help="Analyze a bank statement CSV")
    analyze_parser.add_argument("file", type=Path, help="Statement file (.csv)")

    subparsers.add_parser("chat", parents=[common], help="Start the onboarding conversation")

    args = parser.parse_args(argv)

    try:
        settings = _load_settings()
        set_session_context(args.command)
        if args.command == "analyze":
            code = asyncio.run(analyze_command(args.file, settings, args.offline))
        else:
            code = asyncio.run(chat_command(settings, args.offline))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        code = 130
    except HormiwitaError as e:
        logger.critical(f"Fatal error: {e}")
        print(f"✗ {e}")
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()

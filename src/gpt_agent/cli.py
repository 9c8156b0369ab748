import logging
from pathlib import Path

import typer
from rich.console import Console

app = typer.Typer(name="gpt-agent", help="Conversational automation agent for a local project.")
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s | %(levelname)s | %(message)s")


def _build_llm(model: str = ""):
    from gpt_agent.config import get_model_config, require_api_key
    from gpt_agent.services.llm_service import LLMService

    require_api_key()
    config = get_model_config("agentic")
    if model:
        config.model = model
    return LLMService(config)


def _build_agent(work_dir: Path, model: str = "", max_steps: int = 0):
    """Create AgenticAgent with the built-in tools rooted at work_dir."""
    from gpt_agent.agents.agentic_agent import AgenticAgent
    from gpt_agent.agents.console_callback import ConsoleCallback
    from gpt_agent.config import settings
    from gpt_agent.prompts.prompt_layer import system_prompt
    from gpt_agent.services.local_service import LocalService
    from gpt_agent.services.user_input import ask_single_line, confirm
    from gpt_agent.tools import ExecutionContext, ToolRegistry
    from gpt_agent.tools.base_tools import create_base_tools

    service = LocalService(work_dir=work_dir)
    context = ExecutionContext(service=service, confirm=lambda q: confirm(q, console=console))
    registry = ToolRegistry(context, create_base_tools())

    callback = ConsoleCallback(console)
    callback.print_tools(registry)

    llm = _build_llm(model)
    agent = AgenticAgent(
        llm=llm,
        registry=registry,
        system_prompt=system_prompt(service.work_dir),
        ask_user=lambda _text: ask_single_line("Your reply", console=console),
        max_steps=max_steps or settings.agentic_max_steps,
        callback=callback,
    )
    return agent


@app.command()
def chat(
    work_dir: Path = typer.Option(None, "--work-dir", "-C", help="Project directory (default: config workdir)"),
    model: str = typer.Option("", "--model", "-m", help="gpt-4 or gpt-4-32k (default: config)"),
    max_steps: int = typer.Option(0, "--max-steps", help="Max agent steps per request (0 = use config)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable detailed logging"),
) -> None:
    """Work through requests interactively, one request cycle at a time."""
    from gpt_agent.config import settings
    from gpt_agent.models.agent_schemas import AgentError, ConfigurationError, StepOutcome
    from gpt_agent.services.user_input import ask_multi_line

    _setup_logging(verbose)

    try:
        agent = _build_agent(work_dir or Path(settings.workdir).expanduser(), model, max_steps)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    while True:
        try:
            request = ask_multi_line("What do you want me to do?", console=console)
        except (EOFError, KeyboardInterrupt):
            break
        if not request.strip():
            break

        try:
            result = agent.run(request)
        except AgentError as e:
            logging.getLogger(__name__).debug("Request cycle failed", exc_info=True)
            console.print(f"[red]Request failed: {e}[/red]")
            continue
        except (EOFError, KeyboardInterrupt):
            break

        if result.status is StepOutcome.EXCEEDED_TOKEN_LIMIT:
            console.print("[yellow]Request abandoned: exceededTokenLimit.[/yellow]")
        elif result.status is StepOutcome.MAX_STEPS:
            console.print(f"[yellow]Request stopped after {result.steps} steps.[/yellow]")
    console.print("[dim]Bye.[/dim]")


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="User message"),
    system: str = typer.Option("You are a helpful assistant.", "--system", "-s", help="System message"),
    model: str = typer.Option("", "--model", "-m", help="gpt-4 or gpt-4-32k (default: config)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable detailed logging"),
) -> None:
    """Send a single completion request without tools and print the answer."""
    from gpt_agent.models.agent_schemas import AgentError, CompletionFailure
    from gpt_agent.models.messages import SystemMessage, UserMessage

    _setup_logging(verbose)

    try:
        llm = _build_llm(model)
        with console.status("Asking GPT...", spinner="line"):
            result = llm.complete([SystemMessage(content=system), UserMessage(content=prompt)])
    except AgentError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if isinstance(result, CompletionFailure):
        console.print(f"[red]{result.error}[/red]")
        raise typer.Exit(1)
    console.print(result.new_message.content)

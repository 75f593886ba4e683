# main.py

import argparse
import mimetypes
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

load_dotenv()

from farmwise.agents.planner import DEFAULT_SEASON
from farmwise.core.request_builder import to_data_uri
from farmwise.session import FarmWiseSession

console = Console()

def ask_advisor(farmwise: FarmWiseSession, question: str):
    console.print(f"[bold green]You:[/bold green] {question}")
    console.print("[bold green]Advisor:[/bold green] ", end="")
    shown = ""

    def show(text: str):
        nonlocal shown
        # the failure placeholder replaces partial text instead of extending it
        if text.startswith(shown):
            console.print(text[len(shown):], end="", markup=False)
        else:
            console.print(f"\n{text}", end="", markup=False)
        shown = text

    outcome = farmwise.advisor.invoke(question, on_update=show)
    console.print()
    if not outcome.ok:
        console.print(f"[red]{type(outcome.error).__name__}[/red]")

def recommend(farmwise: FarmWiseSession, season: str):
    outcome = farmwise.planner.invoke(season)
    if not outcome.ok:
        console.print(f"[red]{outcome.message}[/red]")
        return
    table = Table(title=f"{season} Season Planting Plan")
    table.add_column("Crop", style="cyan")
    table.add_column("Duration")
    table.add_column("Difficulty")
    table.add_column("Why", style="dim")
    for crop in outcome.value:
        table.add_row(crop.name, crop.duration, crop.difficulty, crop.reason)
    console.print(table)

def analyze(farmwise: FarmWiseSession, path: str, kind: str):
    mime_type = mimetypes.guess_type(path)[0] or "image/jpeg"
    with open(path, "rb") as f:
        image = to_data_uri(f.read(), mime_type)
    outcome = farmwise.analysis.invoke(image, kind)
    if not outcome.ok:
        console.print(f"[red]{outcome.message}[/red]")
        return
    result = outcome.value
    table = Table(title=f"{kind.title()} Analysis: {result.quality} ({result.health_score}%)")
    table.add_column("Nutrient", style="cyan")
    table.add_column("Level", justify="right")
    for nutrient in result.nutrients:
        table.add_row(nutrient.label, f"{nutrient.value}%")
    console.print(table)
    console.print(result.description)
    for i, rec in enumerate(result.recommendations, start=1):
        console.print(f"  {i}. {rec}")

# Run the application
if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="FarmWise from the terminal")
    sub = parser.add_subparsers(dest="command", required=True)
    ask = sub.add_parser("ask", help="Ask the FarmWise Advisor a question")
    ask.add_argument("question")
    plan = sub.add_parser("plan", help="Get crop recommendations for a season")
    plan.add_argument("season", nargs="?", default=DEFAULT_SEASON)
    scan = sub.add_parser("analyze", help="Analyze a soil or crop photo")
    scan.add_argument("kind", choices=["soil", "crop"])
    scan.add_argument("path")
    args = parser.parse_args()

    farmwise = FarmWiseSession()
    if args.command == "ask":
        ask_advisor(farmwise, args.question)
    elif args.command == "plan":
        recommend(farmwise, args.season)
    else:
        analyze(farmwise, args.path, args.kind)

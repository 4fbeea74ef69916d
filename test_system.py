"""
Complete system test demonstrating the full insights pipeline.

This script tests:
1. Configuration loading and validation
2. Pattern detection over several journal scenarios
3. Backup and CSV round trips through the codecs
4. Error handling for unreadable records and files

Run with: python test_system.py
"""

from datetime import UTC, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.backup.codec import (
    export_backup_json,
    export_episodes_csv,
    load_backup_json,
    load_episodes_csv,
    merge_episodes,
)
from insights.config import EngineConfig, get_config, print_config_summary, reset_config_cache
from insights.domain.models import Episode
from insights.services.pattern_engine import PatternEngine

console = Console()

NOW = datetime(2026, 3, 18, 12, 0, tzinfo=UTC)


def build_scenario(scenario: str) -> list[Episode]:
    """Generate a journal that should trigger specific rules."""

    def at(days_ago: int, hour: int, **fields) -> Episode:
        moment = (NOW - timedelta(days=days_ago)).replace(hour=hour, minute=0)
        return Episode(id=f"{scenario}-{days_ago}-{hour}", datetime=moment, **fields)

    if scenario == "evening_coffee":
        # Daily evening episodes after coffee, painkiller every time
        return [
            at(d, 19, intensity=7, triggers=("Coffee", "stress"),
               medications=({"name": "ibuprofen", "doseMg": 400},))
            for d in range(1, 13)
        ]

    if scenario == "rising_intensity":
        # Weekly episodes getting worse over six weeks
        return [
            at(d, 9, intensity=2 + i, triggers=("poor sleep",))
            for i, d in enumerate((35, 28, 21, 14, 7, 1))
        ]

    if scenario == "weekend_pattern":
        # Saturdays and Sundays only
        return [
            at(d, 14, intensity=4, triggers=("alcohol",))
            for d in (3, 4, 10, 11, 17, 18, 24, 25)
        ]

    # "quiet": nothing logged yet
    return []


def test_configuration() -> bool:
    """Test configuration loading and validation."""

    console.print(Panel("Testing Configuration", style="blue"))

    try:
        config = get_config()
        console.print(
            f"✅ Configuration loaded ({config.environment}, trend={config.engine.trend_strategy})",
            style="green",
        )
        print_config_summary()

        try:
            EngineConfig(trend_window_days=14, trend_split_days=21)
        except ValueError:
            console.print("✅ Invalid engine configuration rejected", style="green")
        else:
            console.print("❌ Invalid engine configuration accepted", style="red")
            return False
        return True

    except Exception as e:
        console.print(f"❌ Configuration test failed: {e}", style="red")
        return False


def test_pattern_detection() -> bool:
    """Run the engine over each scenario and show the findings."""

    console.print(Panel("Testing Pattern Detection", style="blue"))

    try:
        engine = PatternEngine(get_config().engine)
        expected = {
            "evening_coffee": "Frequent triggers",
            "rising_intensity": "Rising intensity",
            "weekend_pattern": "Day-of-week trend",
            "quiet": None,
        }

        table = Table(title="Findings by Scenario")
        table.add_column("Scenario", style="cyan")
        table.add_column("Episodes", style="magenta")
        table.add_column("Findings", style="green")

        ok = True
        for scenario, title in expected.items():
            episodes = build_scenario(scenario)
            findings = engine.analyse(episodes, NOW)
            titles = [f.title for f in findings]
            table.add_row(scenario, str(len(episodes)), ", ".join(titles) or "-")

            if title is None and findings:
                ok = False
            if title is not None and title not in titles:
                console.print(f"❌ {scenario}: expected '{title}'", style="red")
                ok = False

        console.print(table)
        return ok

    except Exception as e:
        console.print(f"❌ Pattern detection test failed: {e}", style="red")
        return False


def test_codecs() -> bool:
    """Round trip a journal through backup JSON and CSV."""

    console.print(Panel("Testing Backup and CSV Codecs", style="blue"))

    try:
        episodes = build_scenario("evening_coffee")

        backup = load_backup_json(export_backup_json(episodes)).unwrap()
        from_csv = load_episodes_csv(export_episodes_csv(episodes)).unwrap()
        merged = merge_episodes(episodes, build_scenario("weekend_pattern"))

        summary = Table(title="Codec Summary")
        summary.add_column("Step", style="cyan")
        summary.add_column("Episodes", style="white")
        summary.add_row("Original", str(len(episodes)))
        summary.add_row("Backup JSON", str(len(backup.episodes)))
        summary.add_row("CSV", str(len(from_csv)))
        summary.add_row("Merged", str(len(merged)))
        console.print(summary)

        return len(backup.episodes) == len(from_csv) == len(episodes)

    except Exception as e:
        console.print(f"❌ Codec test failed: {e}", style="red")
        return False


def test_error_handling() -> bool:
    """Unreadable records are skipped and broken files come back as errors."""

    console.print(Panel("Testing Error Handling", style="blue"))

    try:
        records: list = [e.model_dump(by_alias=True) for e in build_scenario("evening_coffee")]
        records += [{"id": "no-datetime"}, "not a record", None]

        findings = PatternEngine(get_config().engine).analyse(records, NOW)
        console.print(f"✅ Analysed with bad records skipped: {len(findings)} findings",
                      style="green")

        broken = load_backup_json("{not json")
        if broken.is_ok():
            console.print("❌ Broken backup was accepted", style="red")
            return False
        console.print(f"✅ Broken backup reported: {broken.unwrap_err()}", style="green")

        reset_config_cache()
        return bool(findings)

    except Exception as e:
        console.print(f"❌ Error handling test failed: {e}", style="red")
        return False


def run_all_tests() -> None:
    """Run all system tests."""

    console.print(Panel("Episode Insights - System Tests", style="bold blue"))

    tests = [
        ("Configuration", test_configuration),
        ("Pattern Detection", test_pattern_detection),
        ("Codecs", test_codecs),
        ("Error Handling", test_error_handling),
    ]

    results = []

    for test_name, test_func in tests:
        console.print(f"\n{'=' * 60}")
        try:
            results.append((test_name, test_func()))
        except KeyboardInterrupt:
            console.print("\nTests interrupted by user", style="yellow")
            break

    console.print(f"\n{'=' * 60}")
    console.print(Panel("Test Results Summary", style="bold"))

    summary_table = Table()
    summary_table.add_column("Test", style="cyan")
    summary_table.add_column("Result", style="white")

    passed = 0
    for test_name, result in results:
        if result:
            summary_table.add_row(test_name, "✅ PASSED")
            passed += 1
        else:
            summary_table.add_row(test_name, "❌ FAILED")

    console.print(summary_table)
    console.print(f"\nResults: {passed}/{len(results)} tests passed")

    if passed == len(results):
        console.print("All tests passed! The insights engine is ready.", style="green")
    else:
        console.print("Some tests failed. Check the output above for details.", style="yellow")


if __name__ == "__main__":
    try:
        run_all_tests()
    except KeyboardInterrupt:
        console.print("\nTests stopped by user", style="yellow")

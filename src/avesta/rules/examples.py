from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RuleExample:
    language: str
    bad: str
    good: str | None = None
    notes: str | None = None


EXAMPLES: dict[str, RuleExample] = {
    "handle-negative-first": RuleExample(
        language="typescript",
        bad=(
            "function processUser(user) {\n"
            "  if (user.isActive) {\n"
            "    if (user.hasPermission) {\n"
            "      return processUserData(user.data);\n"
            "    }\n"
            "  }\n"
            "  return null;\n"
            "}\n"
        ),
        good=(
            "function processUser(user) {\n"
            "  if (!user.isActive) return null;\n"
            "  if (!user.hasPermission) return null;\n"
            "  return processUserData(user.data);\n"
            "}\n"
        ),
        notes="Options: max-nesting-depth, allow-single-nesting, enforce-throw, max-else-depth, check-ternaries, ...",
    ),
    "react-props-helper": RuleExample(
        language="tsx",
        bad=(
            "<Chart\n"
            "  options={{ title: `Sales ${year}`, legend: isWide ? 'right' : 'bottom', animate: true }}\n"
            "/>\n"
        ),
        good="const chartOptions = buildChartOptions(year, isWide);\n\n<Chart options={chartOptions} />\n",
        notes="Options: max-inline-props, max-ternary-operations, ignore-props.",
    ),
    "prometheus-label-config": RuleExample(
        language="typescript",
        bad="const config = { prometheusLabels: { query: '' } };\n",
        good="const config = { prometheusLabels: { query: 'orders_total' } };\n",
    ),
}

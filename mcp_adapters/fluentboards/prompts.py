"""Prompt abilities: parameterized analysis prompts over FluentBoards data.

Each prompt fills a text template from its arguments (falling back to the
schema defaults) and returns ``{"success": True, "prompt": ..., "parameters": ...}``.
"""

from mcp_adapters.fluentboards._base import BaseAbility, boolean, object_schema, string

PROJECT_OVERVIEW = """\
Generate a comprehensive FluentBoards project overview with these parameters:
- Report Type: {report_type}
- Timeframe: {timeframe}
- Board Types: {board_types}
- Priority Filter: {priority_filter}
- Include Forecasts: {include_forecasts}

Please provide a strategic project portfolio analysis covering:

## Portfolio Summary
- Active projects, their phases and overall portfolio health
- Resource allocation across projects and teams

## Project Status Dashboard
- Projects by status, critical paths and dependencies
- Projects at risk or behind schedule, upcoming milestones

## Resource Allocation Analysis
- Capacity utilization, bottlenecks and resource conflicts

## Performance Metrics
- Velocity, throughput and completion trends
- Timeline adherence and deliverable quality

## Forecasts and Predictions
- Completion timeline predictions and capacity planning

## Strategic Recommendations
- Portfolio optimization and process improvements

Focus on actionable insights for strategic decision-making and resource planning."""

ANALYZE_WORKFLOW = """\
Analyze FluentBoards project workflow and team productivity with these parameters:
- Boards: {board_ids}
- Timeframe: {timeframe}
- Focus Area: {focus_area}
- Team Members: {team_members}
- Include Recommendations: {include_recommendations}

Please provide a comprehensive analysis covering:

## Project Overview
- Board structure, active projects and team involvement

## Workflow Analysis
- Task progression through stages and stage bottlenecks
- Completion rates, velocity and time spent per stage

## Productivity Metrics
- Tasks created vs completed over time
- Contribution patterns and work distribution across board types

## Collaboration Insights
- Comment activity, task handoffs and label usage

## Optimization Recommendations
- Workflow, stage configuration and workload balancing improvements

Focus on actionable insights that improve delivery times and workflow efficiency."""

STATUS_CHECKIN = """\
Generate a FluentBoards status check-in report with these parameters:
- Meeting Type: {meeting_type}
- Period: {period}
- Team Members: {team_members}
- Boards: {board_ids}
- Include Blockers: {include_blockers}

Please provide a concise status update covering:

## What Was Completed
- Tasks completed, milestones achieved and issues resolved

## Current Work in Progress
- Active tasks, current priorities and expected completion

## Coming Up Next
- Planned tasks, upcoming deadlines and pending dependencies

## Blockers and Issues
- Stuck tasks, blocking dependencies and decisions needed

## Action Items and Follow-ups
- Items needing immediate attention and who owns them

Keep individual updates concise but complete enough for team coordination."""

TEAM_PRODUCTIVITY = """\
Analyze team productivity and performance in FluentBoards with these parameters:
- Analysis Focus: {analysis_focus}
- Timeframe: {timeframe}
- Team Members: {team_members}
- Board Types: {board_types}
- Compare Periods: {compare_periods}

Please provide a comprehensive team productivity analysis covering:

## Individual Performance Metrics
- Completion rates, velocity and contribution consistency

## Team Collaboration Analysis
- Communication, task handoffs and knowledge sharing

## Workload Distribution
- Assignment balance, capacity utilization and burnout risk

## Productivity Trends
- Velocity changes over time and their drivers

## Optimization Recommendations
- Coaching, structure, process and allocation adjustments

Focus on actionable insights that improve team performance and sustainability."""


def _yes_no(value):
    return "Yes" if value else "No"


class Prompts(BaseAbility):
    subcategory = "prompts"

    # name -> (label, description, subcategory, template, schema properties)
    PROMPTS = {
        "project-overview": (
            "FluentBoards Project Overview",
            "Generate project overview reports across all boards with portfolio "
            "health, resource allocation and strategic priorities",
            "reports",
            PROJECT_OVERVIEW,
            {
                "report_type": string(
                    "Type of overview",
                    enum=[
                        "executive_summary",
                        "detailed_status",
                        "roadmap_review",
                        "resource_analysis",
                        "comprehensive",
                    ],
                    default="comprehensive",
                ),
                "timeframe": string('Period to analyze (e.g., "this quarter")', default="this quarter"),
                "board_types": string(
                    "Board types to include: kanban, to-do, roadmap, or all", default="all"
                ),
                "priority_filter": string(
                    "Priority levels to focus on",
                    enum=["urgent", "high", "medium", "low", "all"],
                    default="all",
                ),
                "include_forecasts": boolean("Include forecasts", default=True),
            },
        ),
        "analyze-workflow": (
            "FluentBoards Workflow Analysis",
            "Analyze project workflow and productivity metrics and recommend optimizations",
            "analysis",
            ANALYZE_WORKFLOW,
            {
                "board_ids": string("Board IDs to analyze (comma-separated); all when empty"),
                "timeframe": string('Time period (e.g., "last 7 days")', default="last 30 days"),
                "focus_area": string(
                    "Area to focus on",
                    enum=["bottlenecks", "velocity", "team_performance", "stage_efficiency", "general"],
                    default="general",
                ),
                "team_members": string("Team member IDs or usernames (comma-separated)"),
                "include_recommendations": boolean("Include optimization recommendations", default=True),
            },
        ),
        "status-checkin": (
            "FluentBoards Status Check-in",
            "Generate status check-in reports for standups, team meetings and progress reviews",
            "status",
            STATUS_CHECKIN,
            {
                "meeting_type": string(
                    "Type of check-in",
                    enum=["daily_standup", "weekly_review", "sprint_review", "retrospective", "custom"],
                    default="daily_standup",
                ),
                "period": string('Time period (e.g., "since yesterday")', default="since yesterday"),
                "team_members": string("Team members to include", default="all active members"),
                "board_ids": string("Board IDs to report on", default="all active boards"),
                "include_blockers": boolean("Include blocker analysis", default=True),
            },
        ),
        "team-productivity": (
            "FluentBoards Team Productivity Analysis",
            "Analyze team productivity, individual performance and collaboration patterns",
            "analytics",
            TEAM_PRODUCTIVITY,
            {
                "analysis_focus": string(
                    "Focus area",
                    enum=[
                        "individual_performance",
                        "team_dynamics",
                        "collaboration_patterns",
                        "workload_balance",
                        "comprehensive",
                    ],
                    default="comprehensive",
                ),
                "timeframe": string('Time period (e.g., "last month")', default="last 30 days"),
                "team_members": string('Team members to analyze, or "all"', default="all"),
                "board_types": string(
                    "Board types to include",
                    enum=["kanban", "to-do", "roadmap", "all"],
                    default="all",
                ),
                "compare_periods": boolean("Compare with the previous period", default=True),
            },
        ),
    }

    # Shown instead of an empty value for arguments without a default.
    FALLBACKS = {
        "analyze-workflow": {"board_ids": "All accessible boards", "team_members": "All team members"},
    }

    def register_abilities(self):
        for name, (label, description, subcategory, template, properties) in self.PROMPTS.items():
            self.register(
                name,
                self._renderer(name, template, properties),
                label=label,
                description=description,
                input_schema=object_schema(properties),
                error_code="prompt_failed",
                failure=f"build {name} prompt",
                meta={"type": "prompt", "subcategory": subcategory},
            )

    def _renderer(self, name, template, properties):
        fallbacks = self.FALLBACKS.get(name, {})

        def render(args):
            return self.render(template, properties, args, fallbacks)

        render.__name__ = f"execute_{name.replace('-', '_')}"
        return render

    @staticmethod
    def render(template, properties, args, fallbacks=None):
        """Fill ``template`` from ``args``, schema defaults and ``fallbacks``."""
        values = {}
        for key, schema in properties.items():
            value = args.get(key, schema.get("default"))
            if schema.get("type") == "boolean":
                value = _yes_no(value)
            elif not value:
                value = (fallbacks or {}).get(key, "")
            values[key] = value
        return {"success": True, "prompt": template.format(**values), "parameters": args}

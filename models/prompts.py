# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""Prompt builders for the GSD task analysis calls."""

from typing import Iterable, Optional

QUADRANT_GUIDE = """Quadrant options:
q1: Urgent & Important (directly relates to goal/priority and time-sensitive)
q2: Important, Not Urgent (relates to goal but not time-sensitive)
q3: Urgent, Not Important (time-sensitive but doesn't relate to goal)
q4: Not Urgent & Not Important (neither time-sensitive nor related to goal)"""


def _goal_lines(goal: Optional[str], priority: Optional[str]) -> str:
    lines = []
    if goal:
        lines.append(f'The user\'s main goal is: "{goal}"')
    if priority:
        lines.append(f'Their #1 priority for today is: "{priority}"')
    return "\n".join(lines)


def make_categorize_prompt(
    task: str, goal: Optional[str] = None, priority: Optional[str] = None
) -> str:
    return f"""You are an AI assistant for an Eisenhower Matrix productivity app.

{_goal_lines(goal, priority)}

Analyze the following task and respond in strict JSON format as follows:
{{
  "category": "qX",
  "reasoning": "your concise explanation of why you chose this quadrant",
  "taskType": "personal|work|business",
  "alignmentScore": 0-10,
  "urgencyScore": 0-10,
  "importanceScore": 0-10
}}

{QUADRANT_GUIDE}

Be brief and clear in your reasoning. Respond with only valid JSON, no extra text.

Task: "{task}"
"""


def make_reflection_prompt(
    task: str,
    justification: str,
    goal: Optional[str],
    priority: Optional[str],
    current_quadrant: str,
) -> str:
    return f"""You are an AI task analyzer helping users align their tasks with their goals.
The user's main goal is: "{goal or 'Not set'}"
Their #1 priority for today is: "{priority or 'Not set'}"

A task was categorized as {current_quadrant} (not directly aligned with their goal).
The user has provided a justification for why they still want to do this task.

Analyze their justification and:
1. Determine if the justification shows good alignment with their goal/priority
2. If yes, suggest moving to a more important quadrant (q1 or q2)
3. If no, provide a constructive suggestion for better goal alignment

Task: "{task}"
Justification: "{justification}"
"""


def make_insights_prompt(
    metrics: dict,
    task_lines: Iterable[str],
    goal: Optional[str],
    priority: Optional[str],
) -> str:
    q = metrics["quadrant_metrics"]

    def pct(value: float) -> str:
        return f"{value * 100:.1f}%"

    def quadrant_line(key: str, label: str) -> str:
        m = q[key]
        return (
            f"- {key.upper()} ({label}): {m['completed']}/{m['total']} completed "
            f"({pct(m['completion_rate'])})"
        )

    tasks_block = "\n".join(task_lines) or "No tasks today."
    return f"""You are an expert productivity coach analyzing a user's daily task performance.

USER'S GOAL: "{goal or 'Not specified'}"
USER'S PRIORITY FOR TODAY: "{priority or 'Not specified'}"

TASK PERFORMANCE METRICS:
- Total tasks: {metrics['total_tasks']}
- Completed tasks: {metrics['completed_tasks']}
- Overall completion rate: {pct(metrics['completion_rate'])}
- High-value task completion rate (Q1+Q2): {pct(metrics['high_value_completion_rate'])}
- Priority alignment score (0-10): {metrics['priority_alignment_score']}

QUADRANT BREAKDOWN:
{quadrant_line('q1', 'Urgent & Important')}
{quadrant_line('q2', 'Not Urgent but Important')}
{quadrant_line('q3', 'Urgent but Not Important')}
{quadrant_line('q4', 'Not Urgent & Not Important')}

TASK DETAILS:
{tasks_block}

Based on this information, please provide:
1. A brief analysis of the user's productivity today (2-3 sentences)
2. Three specific, actionable suggestions for improvement tomorrow that are directly tied to their goal and priority

Your response should be concise, constructive, and focused on helping the user improve their productivity and goal alignment.
"""


def make_personal_context_prompt(personal_context: str) -> str:
    return f"""You are an AI assistant helping analyze personal context for task prioritization using the Eisenhower Matrix.

Analyze the following personal context and provide specific guidance for each quadrant of the Eisenhower Matrix. The response should help the user prioritize tasks based on their personal context:

Personal Context:
{personal_context}

For each quadrant, provide:
1. A concise summary (1-2 sentences)
2. 2-4 bullet points with specific criteria or examples based on the user's context
"""


def make_chat_system_prompt(
    formatted_tasks: str, user_context: Optional[str], include_completed: bool
) -> str:
    context_line = f"CONTEXT: {user_context}\n" if user_context else ""
    if include_completed:
        note = "NOTE: Including completed/archived tasks as requested.\n"
    else:
        note = (
            "NOTE: Only showing active tasks. Add \"show completed\" to context "
            "to see all tasks.\n"
        )
    return f"""You are a helpful assistant, with access to a task database query engine. You give helpful advice on how to be more productive or focused, but ONLY reference tasks from this list (if asked about tasks specifically):

=== TASK DATABASE ===
{formatted_tasks}

RESPONSE RULES:
1. ALWAYS use TASK_[id] format to reference tasks
2. NEVER make up task IDs or numbers
3. NO general advice or abstractions
4. Keep responses under 50 words
5. Include task details (quadrant/type)
6. By default, ONLY suggest active tasks
7. ONLY mention completed tasks if explicitly requested

RESPONSE FORMAT:
TASK_[id] ([quadrant]/[type]) needs [specific action] because [1-line reason].

Next: TASK_[other-id].

{context_line}{note}REMEMBER: ALWAYS use TASK_[id] format when referencing tasks."""

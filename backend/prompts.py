# Prompt for turning free-form task text into structured task fields
# Quadrants: Eisenhower matrix (urgent/important)
# Recurrence: generic string pattern, custom object, or null
# Scores feed the XP calculation in xp.py
PARSE_TASK_PROMPT = """Today's date is: {today}

Extract task details from this user input and categorize it into an Eisenhower Matrix quadrant.

User input: "{input}"

You must respond with ONLY a valid JSON object (no markdown, no explanation) with these exact fields:
{{
    "title": "short task title (max 50 chars)",
    "description": "additional details or empty string if none",
    "deadline": "YYYY-MM-DD format ONLY if user explicitly mentions a date/deadline, otherwise null",
    "quadrant": "one of: urgent-important, not-urgent-important, urgent-not-important, not-urgent-not-important",
    "recurrence": <recurrence pattern - see below>,
    "complexity": "one of: easy, medium, hard",
    "futurePainScore": "float 0-1: how bad life gets if delayed (health=1.0, money=0.9, legal=0.9, admin=0.6, social=0.4, trivial=0.1)",
    "urgencyScore": "float 0-1: time pressure (overdue=1.0, today=0.9, this_week=0.7, next_week=0.4, no_deadline=0.2)",
    "frictionScore": "float 0-1: likelihood of avoidance (calling/paperwork=0.9, multi-step=0.7, simple=0.2)"
}}

Quadrant rules:
- "urgent-important": Deadlines within 2 days, emergencies, crises, critical issues
- "not-urgent-important": Important goals, deadlines > 2 days away, planning, learning, health
- "urgent-not-important": Minor urgent items, some calls/emails, interruptions
- "not-urgent-not-important": Low priority, trivial tasks, entertainment, time wasters

Recurrence patterns - use the most specific format possible:
1. Generic patterns, only when no specific day is mentioned: "daily", "weekly", "monthly", "yearly"
2. Specific weekdays (0=Sunday, 1=Monday, ... 6=Saturday):
   - "every Monday" -> {{"interval": 1, "unit": "week", "weekDays": [1]}}
   - "every Monday and Wednesday" -> {{"interval": 1, "unit": "week", "weekDays": [1, 3]}}
   - "weekdays" -> {{"interval": 1, "unit": "week", "weekDays": [1, 2, 3, 4, 5]}}
3. Custom intervals:
   - "every 2 weeks" -> {{"interval": 2, "unit": "week"}}
   - "every other day" -> {{"interval": 2, "unit": "day"}}
4. Specific day of month:
   - "1st of each month" -> {{"interval": 1, "unit": "month", "monthDay": 1}}
5. No recurrence: null

Complexity rules:
- "easy": Quick tasks (< 15 min), simple actions, minimal thinking required
- "medium": Moderate effort (15 min - 2 hours), some planning needed
- "hard": Significant effort (> 2 hours), complex, multiple steps, deep focus required

Score practical obligations only, not generic self-improvement:
- futurePainScore examples: dentist=0.9, taxes=0.85, reply to email=0.3, watch movie=0.1
- frictionScore: tasks people avoid (phone calls, paperwork) get high scores

Do NOT add a deadline unless the user explicitly mentions a date. Recurring tasks do not need a deadline.

Respond with ONLY the JSON object."""


# Prompt for re-categorizing a batch of existing tasks
# {tasks} is one block per task, built by ai.describe_task_for_sort
SORT_TASKS_PROMPT = """Today's date is: {today}

You are helping categorize tasks into an Eisenhower Matrix. The matrix has 4 quadrants:
1. "urgent-important": urgent and important (Do First) - deadlines today/this week, emergencies, critical issues
2. "not-urgent-important": important but not urgent (Schedule) - long-term goals, future deadlines, strategic work
3. "urgent-not-important": urgent but not important (Delegate) - interruptions, some meetings, non-critical urgent items
4. "not-urgent-not-important": neither urgent nor important (Don't Do) - time wasters, trivial tasks

Consider deadlines when categorizing:
- Tasks with deadlines today or this week are typically urgent
- Tasks with deadlines next month or later are typically not urgent
- Tasks without deadlines should be judged on their inherent urgency and importance

Complexity rules:
- "easy": Quick tasks (< 15 min), simple actions, minimal thinking required
- "medium": Moderate effort (15 min - 2 hours), some planning needed
- "hard": Significant effort (> 2 hours), complex, multiple steps, deep focus required

Recurrence patterns - use the most specific format possible.
When a day of the week is named, use the weekDays format, not "weekly".
1. Generic patterns, only when no specific day is mentioned: "daily", "weekly", "monthly", "yearly"
2. Specific weekdays (0=Sunday, 1=Monday, ... 6=Saturday):
   - "every Monday" -> {{"interval": 1, "unit": "week", "weekDays": [1]}}
   - "weekends" -> {{"interval": 1, "unit": "week", "weekDays": [0, 6]}}
3. Custom intervals: {{"interval": 2, "unit": "week"}} for "every 2 weeks"
4. Specific day of month: {{"interval": 1, "unit": "month", "monthDay": 15}} for "15th of every month"
5. No recurrence detected: null

Here are the tasks to categorize:
{tasks}

Respond with ONLY a JSON array (no markdown, no explanation), one element per task:
[
    {{
        "text": "the exact task text, matched precisely",
        "quadrant": "one of: urgent-important, not-urgent-important, urgent-not-important, not-urgent-not-important",
        "complexity": "one of: easy, medium, hard",
        "recurrence": "pattern detected in the task text/description, otherwise the current one or null"
    }}
]"""

"""
Reminder copy: title/message variations per reminder type.

Each builder takes an optional random.Random so tests can pin the choice.
"""
import random

_STREAK_RISK: list[dict[str, str]] = [
    {
        "title": "🔥 Don't break your {streak}-day streak!",
        "message": "You haven't studied today yet. Just one quick session keeps your streak alive!",
    },
    {
        "title": "🔥 Don't let it slip...",
        "message": "It's not too late! A 5-minute review is all it takes to save your progress.",
    },
    {
        "title": "🔥 Your streak is in danger!",
        "message": "Your {streak}-day streak is about to expire. Don't let all that hard work go to waste!",
    },
    {
        "title": "🔥 Keep the fire burning!",
        "message": "Consistency is key. Open the app now and keep your momentum!",
    },
]

_LIFE_REFILL: list[dict[str, str]] = [
    {"title": "💖 Quiz life refilled!", "message": "New attempts are ready—jump back into practice!"},
    {"title": "💖 You're back in the game!", "message": "Your energy is back! Let's conquer that quiz now."},
    {"title": "💖 Ready for another round?", "message": "Don't let your progress stall. A new heart is waiting for you!"},
    {"title": "💖 Play hearts restored!", "message": "You've got a fresh start. Time to ace those questions!"},
]

# Tasks pending: every message variant mentions the count
_TASKS_PENDING: list[dict[str, str]] = [
    {
        "title": "📚 {count} {tasks} left today",
        "message": "You still have {count} study {tasks} for today. A quick session can make a big difference!",
    },
    {
        "title": "🔔 Don't forget your goals!",
        "message": "You've got this! Just {count} more {tasks} to complete your daily goal.",
    },
    {
        "title": "📖 Finish what you started",
        "message": "Ready to cross those last {count} {tasks} off your list?",
    },
]


def _nudge_titles(streak: int) -> list[str]:
    if streak >= 7:
        return [
            f"🏆 {streak}-day streak! Legend status!",
            "🏆 Keep the momentum going!",
            "🏆 Seven days and counting... unstoppable!",
        ]
    if streak >= 3:
        return [
            f"🔥 {streak} days strong!",
            "🔥 Building a great habit!",
            "🔥 Don't stop now, you're on a roll!",
        ]
    if streak >= 1:
        return [
            "📖 Time for a quick review?",
            "📖 Stay on your streak!",
            "📖 Your brain misses you!",
        ]
    return [
        "👋 Ready to learn today?",
        "👋 Let's start a new streak!",
        "👋 Make today count!",
    ]


def _nudge_messages(streak: int) -> list[str]:
    if streak >= 7:
        return [
            f"Amazing! You've been studying for {streak} days straight. One session today keeps the progress going!",
            f"Consistency is your superpower. Let's make it day {streak + 1}!",
        ]
    if streak >= 3:
        return [
            f"You're building a great habit! Don't break your {streak}-day streak—just 15 minutes today.",
            "You're in the zone. A quick session today will solidify what you've learned.",
        ]
    if streak >= 1:
        return [
            "You studied yesterday—keep the progress! A quick review session goes a long way.",
            "Small steps every day lead to big results. What will you learn today?",
        ]
    return [
        "Start your study journey today. Even a short session helps build lasting knowledge.",
        "The best time to start was yesterday. The second best time is now!",
    ]


def daily_nudge_copy(streak: int, rng: random.Random | None = None) -> tuple[str, str]:
    rng = rng or random
    return rng.choice(_nudge_titles(streak)), rng.choice(_nudge_messages(streak))


def streak_risk_copy(streak: int, rng: random.Random | None = None) -> tuple[str, str]:
    choice = (rng or random).choice(_STREAK_RISK)
    return choice["title"].format(streak=streak), choice["message"].format(streak=streak)


def life_refill_copy(rng: random.Random | None = None) -> tuple[str, str]:
    choice = (rng or random).choice(_LIFE_REFILL)
    return choice["title"], choice["message"]


def tasks_pending_copy(count: int, rng: random.Random | None = None) -> tuple[str, str]:
    choice = (rng or random).choice(_TASKS_PENDING)
    ctx = {"count": count, "tasks": "task" if count == 1 else "tasks"}
    return choice["title"].format(**ctx), choice["message"].format(**ctx)


def streak_break_message(previous_streak: int) -> str:
    """Encouragement after a broken streak, scaled to what was achieved."""
    if previous_streak >= 100:
        return f"Amazing! You had a {previous_streak}-day streak! That's incredible dedication. Time to start a new journey! 🚀"
    if previous_streak >= 50:
        return f"Fantastic! You reached a {previous_streak}-day streak! That's real commitment. Let's build another one! 💪"
    if previous_streak >= 30:
        return f"Great job! You had a {previous_streak}-day streak! That's a whole month of consistent learning. Ready for round two? 🎯"
    if previous_streak >= 14:
        return f"Nice work! You had a {previous_streak}-day streak! Two weeks of dedication is impressive. Let's do it again! 🌟"
    if previous_streak >= 7:
        return f"Good effort! You had a {previous_streak}-day streak! One week of consistent study is solid. Time to start fresh! 📚"
    return "Every streak starts with day 1! You've got this! Let's build a new habit together! 🌱"


DEMO_SAMPLES: list[dict[str, str]] = [
    {
        "type": "daily_nudge",
        "title": "📘 15-minute review time",
        "message": "Stay on your streak—finish one quick session today.",
    },
    {
        "type": "streak_risk",
        "title": "🔥 Don't lose your {streak}-day streak",
        "message": "One more study session keeps the progress!",
    },
    {
        "type": "tasks_pending",
        "title": "🔔 Tasks waiting",
        "message": "You still have 2 study tasks open for today.",
    },
    {
        "type": "life_refill",
        "title": "💖 Quiz life refilled",
        "message": "New attempts are ready—jump back into practice!",
    },
]

"""
Adherence Service
Streaks, milestones, badges and weekly summaries derived from the dose ledger
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from config import tracker_config
from models import BadgeCategory, DoseStatus, MilestoneType
from tools.schedule_model import Medication, normalize_date, parse_slot_key, slot_instant, slot_key
from actions.behavior_engine import TIME_WINDOWS, get_time_window


logger = logging.getLogger(__name__)


@dataclass
class Milestone:
    """A fixed day-streak or dose-count target"""
    id: str
    type: MilestoneType
    target: int
    achieved: bool = False
    achieved_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "target": self.target,
            "achieved": self.achieved,
            "achieved_date": self.achieved_date,
        }


@dataclass
class AdherenceStreak:
    """Streak summary recomputed from the ledger on every call"""
    current_streak: int
    longest_streak: int
    last_streak_date: str
    total_doses_taken: int
    milestones: List[Milestone] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_streak_date": self.last_streak_date,
            "total_doses_taken": self.total_doses_taken,
            "milestones": [m.to_dict() for m in self.milestones],
        }


@dataclass
class Badge:
    id: str
    name: str
    description: str
    icon: str
    category: BadgeCategory
    earned_date: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "category": self.category.value,
            "earned_date": self.earned_date,
        }


@dataclass
class WeeklySummary:
    """Coaching summary of one Monday-to-Sunday week"""
    week_start: str
    adherence_percentage: int
    total_doses: int
    taken_doses: int
    missed_doses: int
    best_time_window: str = "N/A"
    worst_time_window: str = "N/A"
    suggestions: List[str] = field(default_factory=list)
    achievements: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week_start": self.week_start,
            "adherence_percentage": self.adherence_percentage,
            "total_doses": self.total_doses,
            "taken_doses": self.taken_doses,
            "missed_doses": self.missed_doses,
            "best_time_window": self.best_time_window,
            "worst_time_window": self.worst_time_window,
            "suggestions": self.suggestions,
            "achievements": self.achievements,
        }


def get_week_start(day: date) -> date:
    """Monday of the week containing `day`"""
    return day - timedelta(days=day.weekday())


MILESTONE_IDS = {
    (MilestoneType.DAYS, 7): "week1",
    (MilestoneType.DAYS, 30): "month1",
    (MilestoneType.DAYS, 100): "century",
    (MilestoneType.DOSES, 50): "doses50",
    (MilestoneType.DOSES, 100): "doses100",
    (MilestoneType.DOSES, 500): "doses500",
}

# (id, name, description, icon, category, streak attribute, threshold)
BADGE_RULES = [
    ("streak_week", "Week Warrior", "7 days in a row!", "🔥", BadgeCategory.STREAK, "current_streak", 7),
    ("streak_month", "Monthly Master", "30 days in a row!", "⭐", BadgeCategory.STREAK, "current_streak", 30),
    ("streak_century", "Century Champion", "100 days streak achieved!", "🏆", BadgeCategory.MILESTONE, "longest_streak", 100),
    ("doses_50", "Half Century", "50 doses taken!", "💊", BadgeCategory.ADHERENCE, "total_doses_taken", 50),
    ("doses_100", "Centurion", "100 doses taken!", "🎖️", BadgeCategory.ADHERENCE, "total_doses_taken", 100),
    ("doses_500", "Master Adherer", "500 doses taken!", "👑", BadgeCategory.MILESTONE, "total_doses_taken", 500),
]


class AdherenceService:
    """
    Service for adherence streaks and rewards

    Every figure is a pure function of the ledger and the calendar date.
    Nothing derived is stored, so milestones and badges are re-evaluated
    from scratch on each call.
    """

    def _taken_dates(self, medications: Iterable[Medication]) -> Dict[str, int]:
        """Taken entry count per calendar date"""
        counts: Dict[str, int] = {}
        for med in medications:
            for key, status in med.dose_status.items():
                if status == DoseStatus.TAKEN:
                    day = parse_slot_key(key)[0]
                    counts[day] = counts.get(day, 0) + 1
        return counts

    def calculate_adherence_streak(
        self,
        medications: Iterable[Medication],
        today: date
    ) -> AdherenceStreak:
        """
        Calculate day streaks and dose totals across all medications

        Args:
            medications: Medications whose ledgers are scanned
            today: Calendar date the current streak is anchored on

        Returns:
            AdherenceStreak with milestones evaluated
        """
        taken_by_date = self._taken_dates(medications)
        taken_dates = set(taken_by_date)
        total_doses_taken = sum(taken_by_date.values())

        # Current streak: walk back from today until a day without a dose
        current_streak = 0
        last_streak_date = None
        check_date = today
        while normalize_date(check_date) in taken_dates:
            current_streak += 1
            last_streak_date = normalize_date(check_date)
            check_date -= timedelta(days=1)

        # Longest streak: maximal runs of consecutive dates, newest first
        longest_run = 0
        run = 0
        previous: Optional[date] = None
        for day_str in sorted(taken_dates, reverse=True):
            day = date.fromisoformat(day_str)
            if previous is not None and (previous - day).days == 1:
                run += 1
            else:
                run = 1
            longest_run = max(longest_run, run)
            previous = day
        longest_streak = max(longest_run, current_streak)

        milestones = self._evaluate_milestones(longest_streak, total_doses_taken, today)

        return AdherenceStreak(
            current_streak=current_streak,
            longest_streak=longest_streak,
            last_streak_date=last_streak_date or normalize_date(today),
            total_doses_taken=total_doses_taken,
            milestones=milestones,
        )

    def _evaluate_milestones(
        self,
        longest_streak: int,
        total_doses_taken: int,
        today: date
    ) -> List[Milestone]:
        targets = (
            [(MilestoneType.DAYS, t) for t in tracker_config.DAY_MILESTONES]
            + [(MilestoneType.DOSES, t) for t in tracker_config.DOSE_MILESTONES]
        )

        milestones = []
        for milestone_type, target in targets:
            value = longest_streak if milestone_type == MilestoneType.DAYS else total_doses_taken
            achieved = value >= target
            milestones.append(Milestone(
                id=MILESTONE_IDS.get((milestone_type, target), f"{milestone_type.value}{target}"),
                type=milestone_type,
                target=target,
                achieved=achieved,
                achieved_date=normalize_date(today) if achieved else None,
            ))
        return milestones

    def get_earned_badges(self, streak: AdherenceStreak, today: date) -> List[Badge]:
        """Every badge whose threshold the streak currently meets"""
        earned_date = normalize_date(today)
        return [
            Badge(
                id=badge_id,
                name=name,
                description=description,
                icon=icon,
                category=category,
                earned_date=earned_date,
            )
            for badge_id, name, description, icon, category, attribute, threshold in BADGE_RULES
            if getattr(streak, attribute) >= threshold
        ]

    def get_weekly_summary(
        self,
        medications: Iterable[Medication],
        week_start: date,
        now: Optional[datetime] = None
    ) -> WeeklySummary:
        """
        Summarize one week of scheduled doses

        Args:
            medications: Medications whose ledgers are scanned
            week_start: Any date in the week; moved back to its Monday
            now: Slots after this instant are not counted yet

        Returns:
            WeeklySummary with time-window highlights and coaching lines
        """
        week_start = get_week_start(week_start)
        total = taken = missed = 0
        window_stats: Dict[str, List[int]] = {}  # window -> [taken, total]

        for med in medications:
            for offset in range(7):
                day_str = normalize_date(week_start + timedelta(days=offset))
                for clock_time in sorted(med.times):
                    if now is not None and slot_instant(day_str, clock_time) > now:
                        continue
                    status = med.dose_status.get(slot_key(day_str, clock_time))
                    stats = window_stats.setdefault(get_time_window(clock_time), [0, 0])
                    total += 1
                    stats[1] += 1
                    if status == DoseStatus.TAKEN:
                        taken += 1
                        stats[0] += 1
                    elif status is None:
                        missed += 1

        percentage = int(taken * 100 / total + 0.5) if total else 0

        best_window, best_rate = "", 0.0
        worst_window, worst_rate = "", 100.0
        for window in TIME_WINDOWS:
            if window not in window_stats:
                continue
            window_taken, window_total = window_stats[window]
            rate = window_taken * 100 / window_total
            if rate > best_rate:
                best_window, best_rate = window, rate
            if rate < worst_rate:
                worst_window, worst_rate = window, rate

        suggestions = []
        achievements = []
        if percentage >= 90:
            achievements.append("Excellent adherence this week! 🌟")
        elif percentage >= 75:
            achievements.append("Good adherence this week! 👍")
        else:
            suggestions.append("Try to improve your consistency this week.")

        if worst_window and worst_rate < 80:
            suggestions.append(
                f"Consider moving your {worst_window} medication reminder "
                f"15-30 minutes earlier for better consistency."
            )
        if taken >= 50:
            achievements.append(f"You've taken {taken} doses this week! 💊")
        if percentage >= 95:
            achievements.append("Nearly perfect adherence! Keep it up! 🎯")

        logger.debug(f"Week of {week_start}: {taken}/{total} taken ({percentage}%)")

        return WeeklySummary(
            week_start=normalize_date(week_start),
            adherence_percentage=percentage,
            total_doses=total,
            taken_doses=taken,
            missed_doses=missed,
            best_time_window=best_window or "N/A",
            worst_time_window=worst_window or "N/A",
            suggestions=suggestions or ["Keep up the great work!"],
            achievements=achievements,
        )

    def get_motivational_message(
        self,
        streak: AdherenceStreak,
        rng: Optional[random.Random] = None
    ) -> str:
        """Pick one encouraging line that fits the streak"""
        messages = []

        if streak.current_streak >= 7:
            messages.append("Nice work staying consistent this week 👏")
        if streak.current_streak >= 30:
            messages.append("Amazing! You've maintained your streak for a full month! 🌟")

        if streak.current_streak == 0:
            messages.append("It's okay to have an off day. Let's try again tomorrow 💪")
        elif streak.current_streak < 7:
            messages.append(f"You're on a {streak.current_streak}-day streak! Keep it up! 🔥")

        if streak.total_doses_taken >= 100:
            messages.append(f"You've taken {streak.total_doses_taken} doses! That's dedication! 🎉")

        if not messages:
            return "Keep up the great work! 💊"
        return (rng or random).choice(messages)


# Singleton instance
adherence_service = AdherenceService()

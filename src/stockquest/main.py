"""Main entry point: runs a scripted demo session through the gamification facade"""
import logging
import asyncio

from stockquest.config import validate_config, LOG_LEVEL
from stockquest.models.profile import GamificationEvent
from stockquest.services.gamification_service import GamificationService

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO)
)

logger = logging.getLogger(__name__)

DEMO_SESSION = [
    ("alice", "daily_login", {}),
    ("alice", "lesson_completed", {"lesson_id": "what-is-a-stock"}),
    ("alice", "quiz_passed", {"quiz_id": "basics", "score": 100}),
    ("alice", "module_completed", {"module_id": "foundations"}),
    ("bob", "daily_login", {}),
    ("bob", "trade_executed", {"symbol": "aapl", "quantity": 10, "profit_pct": 12.5}),
    ("bob", "community_help", {"thread_id": "t-42"}),
    ("carol", "lesson_completed", {"lesson_id": "what-is-a-stock"}),
]


def log_event(event: GamificationEvent) -> None:
    logger.info(f"[event] {event.type.value} user={event.user_id} xp=+{event.xp} points=+{event.points}")


async def main() -> None:
    """Demo application entry point"""
    try:
        # Validate configuration
        logger.info("Validating configuration...")
        validate_config()

        service = GamificationService()
        for event_type in (
            "achievement_unlocked", "level_up", "challenge_completed", "challenge_claimed",
            "weekly_goal_completed", "weekly_goal_claimed",
        ):
            service.on(event_type, log_event)

        for user_id in ("alice", "bob", "carol"):
            await service.register_user(user_id, user_id.title())

        logger.info("Recording demo actions...")
        for user_id, action_type, payload in DEMO_SESSION:
            result = await service.record_action(user_id, action_type, payload)
            logger.info(
                f"{user_id} {action_type}: +{result.xp_awarded} XP, "
                f"unlocked={[a.id for a in result.achievements_unlocked]}"
            )

        # Claim whatever each user finished today
        for user_id in ("alice", "bob", "carol"):
            for challenge in await service.get_daily_challenges(user_id):
                if challenge.status == "completed":
                    claim = await service.claim_challenge(user_id, challenge.id)
                    logger.info(f"{user_id} claimed {challenge.id}: success={claim.success}")

        profile = await service.get_profile("alice")
        logger.info(
            f"Profile {profile.username}: level {profile.level.level} ({profile.level.title}), "
            f"{profile.xp} XP, {profile.total_points} points, rank {profile.rank.name}, "
            f"{profile.achievements_count} achievements, {profile.weekly_xp} XP this week"
        )
        logger.info(
            f"Stats: quiz average {profile.stats.average_quiz_score}, "
            f"win rate {profile.stats.win_rate}%, "
            f"weekly goals {[f'{g.title} {g.progress}/{g.target}' for g in profile.weekly_goals]}"
        )

        board = service.get_leaderboard("overall", "weekly", current_user_id="carol")
        logger.info(f"Weekly overall leaderboard ({board.total_users} users):")
        for entry in board.entries:
            logger.info(f"  #{entry.rank} {entry.username}: {entry.total_points} points, {entry.xp} XP")
        logger.info(f"carol is ranked #{board.current_user_rank}")

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise


def run() -> None:
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()

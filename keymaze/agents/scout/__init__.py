from .agent import FollowRoute, PickupKey, ScoutAgent

__all__ = ["ScoutAgent", "FollowRoute", "PickupKey"]

"""Merging of maps published by several robots into one world map."""

from __future__ import annotations

import dataclasses
import logging
import math
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field

from gridnav.costmap_client import OccupancyGrid, OccupancyGridUpdate
from gridnav.merging_pipeline import MergingPipeline, Transform

logger = logging.getLogger(__name__)

OCCUPANCY_GRID_TYPE = "nav_msgs/OccupancyGrid"


def _clean(name: str) -> str:
    while "//" in name:
        name = name.replace("//", "/")
    if name.endswith("/"):
        name = name[:-1]
    return name


def parent_namespace(name: str) -> str:
    """Namespace holding a graph resource name: '/a/b' -> '/a', '/b' -> '/'."""
    if name == "":
        return ""
    if name == "/":
        return "/"
    stripped = name[:-1] if name.endswith("/") else name
    last = stripped.rfind("/")
    if last == -1:
        return ""
    if last == 0:
        return "/"
    return stripped[:last]


def append_name(left: str, right: str) -> str:
    """Join two graph resource names with a single separator."""
    return _clean(f"{left}/{right}")


def init_pose_from_params(params: Mapping[str, float], name: str) -> Transform | None:
    """Initial pose of a robot read from its map_merge/init_pose_* parameters.

    Returns None when any of x, y, z or yaw is missing.
    """
    namespace = append_name(name, "map_merge")
    try:
        x = float(params[append_name(namespace, "init_pose_x")])
        y = float(params[append_name(namespace, "init_pose_y")])
        z = float(params[append_name(namespace, "init_pose_z")])
        yaw = float(params[append_name(namespace, "init_pose_yaw")])
    except KeyError:
        return None
    return Transform(
        tx=x,
        ty=y,
        tz=z,
        qx=0.0,
        qy=0.0,
        qz=math.sin(yaw * 0.5),
        qw=math.cos(yaw * 0.5),
    )


@dataclass
class MapSubscription:
    """Latest map of one robot and its pose in the world."""

    initial_pose: Transform = field(default_factory=lambda: Transform(qw=1.0))
    writable_map: OccupancyGrid | None = None
    readonly_map: OccupancyGrid | None = None
    lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )


class MapMerge:
    """Collects robot maps and composes them into one merged map."""

    def __init__(
        self,
        robot_map_topic: str = "map",
        robot_map_updates_topic: str = "map_updates",
        robot_namespace: str = "",
        merged_map_topic: str = "map",
        world_frame: str = "world",
        known_init_poses: bool = True,
    ) -> None:
        self.robot_map_topic = robot_map_topic
        self.robot_map_updates_topic = robot_map_updates_topic
        self.robot_namespace = robot_namespace
        self.merged_map_topic = (
            merged_map_topic
            if merged_map_topic.startswith("/")
            else append_name("/", merged_map_topic)
        )
        self.world_frame = world_frame
        self.have_initial_poses = known_init_poses
        self.robots: dict[str, MapSubscription] = {}
        self.subscriptions: list[MapSubscription] = []
        self.pipeline = MergingPipeline()
        self._subscriptions_lock = threading.Lock()
        self._pipeline_lock = threading.Lock()

    def is_robot_map_topic(self, name: str, datatype: str) -> bool:
        """True for an occupancy grid topic of a robot, other than our own output."""
        is_map_topic = (
            append_name(parent_namespace(name), self.robot_map_topic) == name
        )
        contains_robot_namespace = self.robot_namespace in name
        is_occupancy_grid = datatype == OCCUPANCY_GRID_TYPE
        is_our_topic = self.merged_map_topic == name
        return (
            is_occupancy_grid
            and not is_our_topic
            and contains_robot_namespace
            and is_map_topic
        )

    def robot_name_from_topic(self, topic: str) -> str:
        return parent_namespace(topic)

    def add_robot(
        self, name: str, initial_pose: Transform | None = None
    ) -> MapSubscription:
        """Register a robot; a robot already known keeps its subscription."""
        existing = self.robots.get(name)
        if existing is not None:
            return existing
        if initial_pose is None:
            if self.have_initial_poses:
                raise ValueError(
                    f"Couldn't get initial position for robot [{name}]; "
                    "set known_init_poses to False to merge without them"
                )
            initial_pose = Transform(qw=1.0)
        logger.info("adding robot [%s] to system", name)
        subscription = MapSubscription(initial_pose=initial_pose)
        with self._subscriptions_lock:
            self.subscriptions.insert(0, subscription)
        self.robots[name] = subscription
        return subscription

    def full_map_update(
        self, subscription: MapSubscription, msg: OccupancyGrid
    ) -> None:
        """Store a full map unless a newer one is already held."""
        logger.debug("received full map update")
        with subscription.lock:
            current = subscription.readonly_map
            if current is not None and current.stamp > msg.stamp:
                return
            subscription.readonly_map = msg
            subscription.writable_map = None

    def partial_map_update(
        self, subscription: MapSubscription, msg: OccupancyGridUpdate
    ) -> None:
        """Apply a patch to the robot's map; raise ValueError on negative origin."""
        logger.debug("received partial map update")
        if msg.x < 0 or msg.y < 0:
            raise ValueError(
                f"negative coordinates, invalid update. x: {msg.x}, y: {msg.y}"
            )
        x0, y0 = msg.x, msg.y
        xn, yn = msg.width + x0, msg.height + y0

        with subscription.lock:
            grid = subscription.writable_map
            readonly = subscription.readonly_map

        if readonly is None:
            logger.warning(
                "received partial map update, but don't have any full map to "
                "update. skipping."
            )
            return
        if grid is None:
            grid = dataclasses.replace(readonly, data=list(readonly.data))

        grid_xn, grid_yn = grid.width, grid.height
        if xn > grid_xn or x0 > grid_xn or yn > grid_yn or y0 > grid_yn:
            logger.warning(
                "received update doesn't fully fit into existing map, "
                "only part will be copied. received: [%d, %d], [%d, %d] "
                "map is: [0, %d], [0, %d]",
                x0, xn, y0, yn, grid_xn, grid_yn,
            )

        values = iter(msg.data)
        for y in range(y0, min(yn, grid_yn)):
            for x in range(x0, min(xn, grid_xn)):
                grid.data[y * grid_xn + x] = next(values)
        grid.stamp = msg.stamp

        with subscription.lock:
            current = subscription.readonly_map
            if current is not None and current.stamp > grid.stamp:
                return
            subscription.writable_map = grid
            subscription.readonly_map = grid

    def map_merging(self, now: float) -> OccupancyGrid | None:
        """Compose the merged map stamped with now, or None if nothing to merge."""
        logger.debug("Map merging started.")
        if self.have_initial_poses:
            grids = []
            transforms = []
            with self._subscriptions_lock:
                subscriptions = list(self.subscriptions)
            for subscription in subscriptions:
                with subscription.lock:
                    grids.append(subscription.readonly_map)
                    transforms.append(subscription.initial_pose)
            self.pipeline.feed(grids)
            self.pipeline.set_transforms(transforms)

        with self._pipeline_lock:
            merged = self.pipeline.compose_grids()
        if merged is None:
            return None

        logger.debug("all maps merged, publishing")
        merged.stamp = now
        merged.frame_id = self.world_frame
        if not merged.resolution > 0.0:
            raise ValueError("merged map has no valid resolution")
        return merged
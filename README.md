# gridnav

A library for robots that move on 2D occupancy grids. It works on plain
Python and NumPy values: you hand it grids, positions and transforms, and it
hands back costmaps, frontiers, goals, paths and merged maps.

## What is in the package

- `gridnav.costmap_client`
  - `Costmap2D(size_x, size_y, resolution, origin_x, origin_y, default_value)`:
    a grid of byte costs. `resize_map`, `get_index`, `index_to_cells`,
    `map_to_world` (centre of a cell), `world_to_map` (returns `None` off the
    map), `get_cost`, `set_cost`. Cells are held in the NumPy array `data`;
    `lock` guards it.
  - `OccupancyGrid` and `OccupancyGridUpdate`: dataclasses for a whole grid of
    signed occupancy values (−1 unknown, 0..100) and for a rectangular patch.
  - `translate_cost(value)`: occupancy value to cost (0 → 0, 99 → 253,
    100 → 254, −1 → 255, others scaled linearly).
  - `Costmap2DClient(robot_base_frame, transform_tolerance)`: keeps its
    `costmap` in step with `update_full_map(msg)` and
    `update_partial_map(msg)`. A patch with negative coordinates raises
    `ValueError`; a patch that does not fit is clipped to the map.
- `gridnav.costmap_tools`: `nhood4`, `nhood8` (neighbour indexes within the
  map) and `nearest_cell(start, value, costmap)` (breadth-first search,
  `None` when nothing matches).
- `gridnav.frontier_search`: `FrontierSearch(costmap, potential_scale,
  gain_scale, min_frontier_size)` and its `search_from(x, y)`, which returns
  `Frontier` values reachable from the world position, cheapest first. The
  cost is `potential_scale * min_distance * resolution - gain_scale * size *
  resolution` (`frontier_cost`).
- `gridnav.explore`: `Explore` chooses the cheapest frontier whose centroid is
  not blacklisted. `make_plan(x, y)` returns a new goal, or `None` when the
  goal is unchanged or exploration has stopped. A goal that makes no progress
  for `progress_timeout` seconds, or that is reported with
  `reached_goal(aborted=True, goal)`, is blacklisted (`goal_on_blacklist`).
  `visualize_frontiers(frontiers, frame_id)` returns `Marker` values, with
  deletions for markers left over from the previous call. `start`/`stop`
  switch the `running` flag; `same_point(a, b)` compares points to within
  1 cm.
- `gridnav.next_goal`: `GoalFollower(tolerance)` takes a path with
  `on_path(points)` and positions with `on_odometry(x, y)`, and `next_goal()`
  returns a `GoalPose` (position and heading towards the following point)
  when a new goal is due. `euler_to_quaternion(yaw)` gives `(w, x, y, z)`.
- `gridnav.path_planning`: `PathPlanning(costmap, cell_size)` merges the
  costmap into `cell_size` × `cell_size` cells (a cell is free only if all its
  squares are free) and `plan(robot_x, robot_y)` walks a coverage path of
  `CellIndex` values, at most 9000 steps. `path_in_world` returns the path as
  `WorldPose` values in the map frame; `covered_grid()` returns the costmap as
  an `OccupancyGrid`. A robot position off the map raises `ValueError`.
- `gridnav.grid_warper`: `Rect`, `warp_roi(shape, transform)` and
  `GridWarper.warp(grid, transform)`, which returns the region and the image
  warped with nearest-neighbour sampling (uncovered cells are 255, i.e. −1).
- `gridnav.grid_compositor`: `result_roi(rois)` and
  `GridCompositor.compose(grids, rois)`, which overlays warped grids keeping
  the highest occupancy.
- `gridnav.merging_pipeline`: `Transform` (translation and quaternion; the
  all-zero default means unknown) and `MergingPipeline` with `feed(grids)`,
  `set_transforms(transforms)` (`ValueError` if the count differs),
  `get_transforms()` and `compose_grids()`. The merged grid takes the
  resolution of the grid placed by the identity transform, otherwise that of
  any grid, and its origin is set to its centre.
- `gridnav.map_merge`: `MapMerge` keeps one `MapSubscription` per robot
  (`add_robot`), applies `full_map_update` and `partial_map_update` (older
  messages do not replace newer ones) and `map_merging(now)` returns the
  merged map in the world frame. `is_robot_map_topic` and
  `robot_name_from_topic` classify topic names; `parent_namespace`,
  `append_name` and `init_pose_from_params` handle names and per-robot
  `map_merge/init_pose_{x,y,z,yaw}` parameters.

Messages are logged through the standard `logging` module.

## Installation

```
pip install .
```

With the test dependencies:

```
pip install .[test]
pytest
```

## Examples

### Searching for frontiers

```python
from gridnav.costmap_client import Costmap2D
from gridnav.frontier_search import FrontierSearch

costmap = Costmap2D(100, 100, 0.05, 0.0, 0.0, 255)   # everything unknown
for mx in range(40, 60):
    for my in range(40, 60):
        costmap.set_cost(mx, my, 0)                  # a known free patch

search = FrontierSearch(costmap, 1e-3, 1.0, 0.5)
for frontier in search.search_from(2.5, 2.5):
    print(frontier.centroid, frontier.cost)
```

### Exploring

```python
import time
from gridnav.explore import Explore

explore = Explore(costmap, 1e-3, 1.0, 0.5, 30.0, time.monotonic)
goal = explore.make_plan(2.5, 2.5)
# ... drive to goal, then:
explore.reached_goal(False, goal)
```

### Coverage planning

```python
from gridnav.path_planning import PathPlanning

planner = PathPlanning(costmap, 3)      # cells of 3 x 3 grid squares
cells = planner.plan(2.5, 2.5)          # CellIndex values
poses = planner.path_in_world(2.5, 2.5) # WorldPose values
```

### Following a path

```python
from gridnav.next_goal import GoalFollower

follower = GoalFollower(0.2)
follower.on_path([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)])
follower.on_odometry(0.05, 0.0)
print(follower.next_goal())             # goal at (1.0, 0.0)
```

### Merging maps with known initial poses

```python
from gridnav.merging_pipeline import MergingPipeline, Transform

pipeline = MergingPipeline()
pipeline.feed([grid_a, grid_b])                        # OccupancyGrid or None
pipeline.set_transforms([Transform(qw=1.0), Transform(tx=10.0, qw=1.0)])
merged = pipeline.compose_grids()
```

## What the package does not do

- It has no command-line program and runs no node or loop of its own; your
  code calls the methods and decides when.
- It does not talk to a robot, a message bus or a motion controller: it does
  not subscribe to or publish topics, send goals, or look up the robot's pose.
  `Explore` returns goals and `MapMerge` expects you to register robots and
  pass their map messages in.
- `MergingPipeline` only merges grids whose transforms you supply; it does not
  estimate transforms from the grids' content.
- It does not read or write map image files.
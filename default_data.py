"""Built-in muscle groups, exercises and starter routines."""
from __future__ import annotations
import datetime
import uuid
from typing import List, Optional

from models import (
    Exercise,
    MuscleContribution,
    MuscleGroup,
    PlannedSet,
    WorkoutDay,
    WorkoutRoutine,
    utc_now,
)

_MUSCLE_GROUPS = [
    ("chest", "Chest", "push"),
    ("shoulders_front", "Anterior Deltoids", "push"),
    ("shoulders_medial", "Medial Deltoids", "push"),
    ("triceps", "Triceps", "push"),
    ("lats", "Latissimus Dorsi", "pull"),
    ("upper_back", "Upper Back (Rhomboids)", "pull"),
    ("rear_delts", "Posterior Deltoids", "pull"),
    ("biceps", "Biceps", "pull"),
    ("forearms", "Forearms", "pull"),
    ("traps", "Trapezius", "pull"),
    ("quadriceps", "Quadriceps", "legs"),
    ("hamstrings", "Hamstrings", "legs"),
    ("glutes", "Glutes", "legs"),
    ("calves", "Calves", "legs"),
    ("adductors", "Adductors", "legs"),
    ("abs", "Rectus Abdominis", "core"),
    ("obliques", "Obliques", "core"),
    ("lower_back", "Erector Spinae", "core"),
    ("core_stabilizers", "Core Stabilizers", "core"),
]

_EXERCISES = [
    ("back_squat", "Back Squat", [("quadriceps", 45), ("glutes", 30), ("core_stabilizers", 15), ("adductors", 10)]),
    ("front_squat", "Front Squat", [("quadriceps", 50), ("glutes", 25), ("core_stabilizers", 15), ("adductors", 10)]),
    ("goblet_squat", "Goblet Squat", [("quadriceps", 45), ("glutes", 30), ("core_stabilizers", 15), ("adductors", 10)]),
    ("bulgarian_split_squat", "Bulgarian Split Squat", [("quadriceps", 40), ("glutes", 35), ("core_stabilizers", 15), ("hamstrings", 10)]),
    ("lunges", "Lunges", [("quadriceps", 40), ("glutes", 35), ("hamstrings", 15), ("core_stabilizers", 10)]),
    ("deadlift", "Conventional Deadlift", [("glutes", 35), ("hamstrings", 30), ("lower_back", 20), ("lats", 10), ("core_stabilizers", 5)]),
    ("sumo_deadlift", "Sumo Deadlift", [("glutes", 40), ("hamstrings", 25), ("adductors", 20), ("lower_back", 15)]),
    ("good_morning", "Good Morning", [("hamstrings", 45), ("lower_back", 35), ("glutes", 20)]),
    ("kettlebell_swing", "Kettlebell Swing", [("glutes", 40), ("hamstrings", 30), ("core_stabilizers", 20), ("lower_back", 10)]),
    ("leg_press", "Leg Press", [("quadriceps", 50), ("glutes", 30), ("adductors", 20)]),
    ("romanian_deadlift", "Romanian Deadlift", [("hamstrings", 45), ("glutes", 35), ("lower_back", 20)]),
    ("hip_thrust", "Hip Thrust", [("glutes", 70), ("hamstrings", 20), ("core_stabilizers", 10)]),
    ("leg_extension", "Leg Extension", [("quadriceps", 100)]),
    ("leg_curl", "Leg Curl", [("hamstrings", 100)]),
    ("nordic_curl", "Nordic Curl", [("hamstrings", 85), ("glutes", 15)]),
    ("standing_calf_raise", "Standing Calf Raise", [("calves", 100)]),
    ("seated_calf_raise", "Seated Calf Raise", [("calves", 90), ("core_stabilizers", 10)]),
    ("bench_press", "Bench Press", [("chest", 50), ("triceps", 30), ("shoulders_front", 20)]),
    ("incline_bench_press", "Incline Bench Press", [("chest", 45), ("shoulders_front", 30), ("triceps", 25)]),
    ("overhead_press", "Overhead Press", [("shoulders_front", 45), ("triceps", 30), ("shoulders_medial", 15), ("core_stabilizers", 10)]),
    ("lateral_raise", "Lateral Raise", [("shoulders_medial", 85), ("traps", 15)]),
    ("decline_bench_press", "Decline Bench Press", [("chest", 60), ("triceps", 25), ("shoulders_front", 15)]),
    ("chest_fly", "Chest Fly", [("chest", 85), ("shoulders_front", 15)]),
    ("push_up", "Push-Up", [("chest", 45), ("triceps", 30), ("shoulders_front", 15), ("core_stabilizers", 10)]),
    ("dip_chest", "Chest Dip", [("chest", 50), ("triceps", 35), ("shoulders_front", 15)]),
    ("arnold_press", "Arnold Press", [("shoulders_front", 40), ("shoulders_medial", 30), ("triceps", 20), ("core_stabilizers", 10)]),
    ("upright_row", "Upright Row", [("traps", 40), ("shoulders_medial", 40), ("biceps", 20)]),
    ("skull_crusher", "Skull Crusher", [("triceps", 90), ("forearms", 10)]),
    ("triceps_pushdown", "Cable Triceps Pushdown", [("triceps", 90), ("forearms", 10)]),
    ("pull_up", "Pull-Up", [("lats", 45), ("biceps", 25), ("upper_back", 20), ("forearms", 10)]),
    ("barbell_row", "Barbell Row", [("upper_back", 35), ("lats", 35), ("biceps", 20), ("rear_delts", 10)]),
    ("face_pull", "Face Pull", [("rear_delts", 50), ("upper_back", 30), ("traps", 20)]),
    ("barbell_curl", "Barbell Curl", [("biceps", 85), ("forearms", 15)]),
    ("lat_pulldown", "Lat Pulldown", [("lats", 50), ("upper_back", 20), ("biceps", 20), ("forearms", 10)]),
    ("seated_row", "Seated Cable Row", [("upper_back", 40), ("lats", 30), ("biceps", 20), ("rear_delts", 10)]),
    ("shrugs", "Shrugs", [("traps", 90), ("forearms", 10)]),
    ("hammer_curl", "Hammer Curl", [("biceps", 50), ("forearms", 50)]),
    ("reverse_curl", "Reverse Curl", [("forearms", 60), ("biceps", 40)]),
    ("plank", "Plank", [("core_stabilizers", 50), ("abs", 40), ("lower_back", 10)]),
    ("ab_wheel", "Ab Wheel Rollout", [("abs", 50), ("core_stabilizers", 30), ("lower_back", 20)]),
    ("russian_twist", "Russian Twist", [("obliques", 60), ("abs", 30), ("core_stabilizers", 10)]),
    ("back_extension", "Back Extension", [("lower_back", 60), ("glutes", 25), ("hamstrings", 15)]),
]

# (routine name, description, [(day name, [(exercise id, reps, rest seconds)])])
_ROUTINES = [
    (
        "r/Fitness Beginner Linear Progression",
        "Full body A/B linear progression routine for beginners.",
        [
            ("Workout A", [("back_squat", 5, 180), ("bench_press", 5, 180), ("barbell_row", 5, 180)]),
            ("Workout B", [("back_squat", 5, 180), ("overhead_press", 5, 180), ("deadlift", 5, 240)]),
        ],
    ),
    (
        "Bodyweight Recommended Routine",
        "Full-body calisthenics routine from r/bodyweightfitness.",
        [
            (
                "Full Body",
                [
                    ("push_up", 15, 90),
                    ("pull_up", 8, 120),
                    ("goblet_squat", 15, 120),
                    ("hip_thrust", 15, 90),
                    ("plank", 60, 60),
                ],
            ),
        ],
    ),
]


def new_id() -> str:
    return uuid.uuid4().hex


def default_muscle_groups() -> List[MuscleGroup]:
    return [
        MuscleGroup(id=mid, name=name, category=category)
        for mid, name, category in _MUSCLE_GROUPS
    ]


def default_exercises() -> List[Exercise]:
    return [
        Exercise(
            id=eid,
            name=name,
            muscle_contributions=[
                MuscleContribution(muscle_group_id=mid, percentage=pct)
                for mid, pct in contributions
            ],
        )
        for eid, name, contributions in _EXERCISES
    ]


def default_routines(now: Optional[datetime.datetime] = None) -> List[WorkoutRoutine]:
    """Return the starter routines with freshly generated ids."""
    stamp = now or utc_now()
    routines: list[WorkoutRoutine] = []
    for name, description, days in _ROUTINES:
        routines.append(
            WorkoutRoutine(
                id=new_id(),
                name=name,
                description=description,
                created_at=stamp,
                updated_at=stamp,
                days=[
                    WorkoutDay(
                        id=new_id(),
                        name=day_name,
                        order=day_pos + 1,
                        planned_sets=[
                            PlannedSet(
                                id=new_id(),
                                exercise_id=ex_id,
                                target_reps=reps,
                                rest_seconds=rest,
                                order=set_pos + 1,
                            )
                            for set_pos, (ex_id, reps, rest) in enumerate(sets)
                        ],
                    )
                    for day_pos, (day_name, sets) in enumerate(days)
                ],
            )
        )
    return routines

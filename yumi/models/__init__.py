"""Database models — re-exports every model.

Import from here:  from yumi.models import User, Recipe, ...
Or from submodules: from yumi.models.recipes import Recipe
"""

from .base import Base  # noqa: F401

# Users & profile
from .users import Color, User, UserDiet, UserGoal, UserPreference, WeightEntry  # noqa: F401

# Taxonomies & units
from .taxonomy import Category, Diet, Tag, Unit, UnitConversion  # noqa: F401

# Recipes & feedback
from .recipes import (  # noqa: F401
    Comment,
    Favorite,
    Ingredient,
    NutritionInfo,
    Rating,
    Recipe,
    RecipeAttempt,
    RecipeTip,
    recipe_tags,
)

# Collections
from .collections import Collection, CollectionRecipe  # noqa: F401

# Events
from .events import Event, EventParticipant  # noqa: F401

# Meal planning
from .planning import MealPlan, MealPlanEntry, ShoppingList, ShoppingListItem  # noqa: F401

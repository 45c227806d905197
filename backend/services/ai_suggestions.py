"""AI-assisted suggestions built on the chat-completions gateway."""
import json
import re
from typing import Any, Dict, List, Optional

from core.ai_gateway import chat_completion, complete, parse_json_content, tool_call_arguments
from core.exceptions import AIGatewayError
from core.logger import get_logger
from schemas.ai import MarginOptimization, ParLevelIngredient, ParLevelSuggestion
from schemas.recipes import RecipeCostBreakdown, RecipeStep

logger = get_logger("ai_suggestions")

DEFAULT_REASONING = "Based on industry standards"

PAR_LEVEL_SYSTEM_PROMPT = """You are an expert restaurant inventory consultant specializing in par level optimization.
Based on industry standards and best practices, suggest appropriate par levels for restaurant ingredients.

Consider these factors:
- Ingredient category (proteins need higher turnover than dry goods)
- Storage type (refrigerated items have shorter shelf life)
- Typical usage patterns in {concept} restaurants
- Buffer for busy periods (typically 20-30% above average daily usage)

For each ingredient, suggest:
1. par_level: the optimal maximum stock level (in the same unit as provided)
2. reorder_point: the trigger point for reordering (typically 30-40% of par level)
3. reasoning: brief explanation of why this level is recommended

Return ONLY a valid JSON array. Each object must have: id, par_level (number), reorder_point (number), reasoning (string)."""

MARGIN_SYSTEM_PROMPT = """You are an expert restaurant consultant specializing in food cost optimization and menu engineering.
Analyze recipe costs and provide actionable suggestions to improve profit margins without sacrificing quality.

Focus on high-cost ingredients that could be substituted or reduced, portion sizes, menu pricing,
preparation efficiency and sourcing alternatives. Be specific and practical."""

RECIPE_STEPS_SYSTEM_PROMPT = (
    "You are a professional chef assistant. Generate clear, practical cooking instructions. "
    "Always respond with valid JSON only, no markdown."
)

MARGIN_TOOL = {
    "type": "function",
    "function": {
        "name": "provide_optimization_suggestions",
        "description": "Return profit margin optimization suggestions for a recipe",
        "parameters": {
            "type": "object",
            "properties": {
                "summary": {"type": "string"},
                "targetFoodCostPct": {"type": "number"},
                "potentialSavings": {"type": "number"},
                "suggestions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "type": {
                                "type": "string",
                                "enum": ["substitution", "portion", "pricing", "sourcing", "technique"],
                            },
                            "title": {"type": "string"},
                            "description": {"type": "string"},
                            "impact": {"type": "string", "enum": ["low", "medium", "high"]},
                            "estimatedSavings": {"type": "string"},
                        },
                        "required": ["type", "title", "description", "impact"],
                    },
                },
            },
            "required": ["summary", "suggestions"],
        },
    },
}

_NUMBERED_LINE = re.compile(r"^\s*\d+[.)]\s*")


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def map_par_level_suggestions(
    ingredients: List[ParLevelIngredient],
    raw: Any,
) -> Dict[str, ParLevelSuggestion]:
    """
    Pair model output with the requested ingredients: by position first, then
    by id. Entries without usable numbers are dropped.
    """
    if isinstance(raw, dict):
        raw = raw.get("suggestions")
    suggestions = raw if isinstance(raw, list) else []
    by_id = {str(s.get("id")): s for s in suggestions if isinstance(s, dict) and s.get("id") is not None}

    mapped: Dict[str, ParLevelSuggestion] = {}
    for i, ingredient in enumerate(ingredients):
        candidate = suggestions[i] if i < len(suggestions) and isinstance(suggestions[i], dict) else None
        if candidate is None:
            candidate = by_id.get(str(ingredient.id))
        if candidate is None:
            continue
        par = _as_float(candidate.get("par_level"))
        reorder = _as_float(candidate.get("reorder_point"))
        if par is None or reorder is None:
            continue
        mapped[str(ingredient.id)] = ParLevelSuggestion(
            par_level=round(par),
            reorder_point=round(reorder),
            reasoning=candidate.get("reasoning") or DEFAULT_REASONING,
        )
    return mapped


async def suggest_par_levels(
    ingredients: List[ParLevelIngredient],
    concept_type: Optional[str] = None,
) -> Dict[str, ParLevelSuggestion]:
    if not ingredients:
        return {}
    logger.info("Generating par level suggestions for %d ingredients", len(ingredients))

    listing = "\n".join(
        f"- {ing.name} ({ing.category}, stored in {ing.storage_location or 'dry storage'}, "
        f"unit: {ing.unit}, current: {ing.current_stock:g})"
        for ing in ingredients
    )
    content = await complete(
        PAR_LEVEL_SYSTEM_PROMPT.format(concept=concept_type or "casual dining"),
        f"Suggest optimal par levels for these restaurant ingredients:\n\n{listing}\n\n"
        "Return a JSON array with id, par_level, reorder_point, and reasoning for each.",
    )
    mapped = map_par_level_suggestions(ingredients, parse_json_content(content))
    logger.info("Generated suggestions for %d ingredients", len(mapped))
    return mapped


def _margin_prompt(breakdown: RecipeCostBreakdown) -> str:
    price = f"${breakdown.menu_price:.2f}" if breakdown.menu_price else "Not set"
    pct = f"{breakdown.food_cost_pct:.1f}%" if breakdown.food_cost_pct is not None else "N/A"
    lines = "\n".join(
        f"- {line.name}: {line.quantity:g} {line.unit} @ ${line.unit_cost:.2f} = "
        f"${line.line_cost:.2f} ({line.percentage:.0f}% of cost)"
        for line in breakdown.lines
    )
    return (
        "Analyze this recipe and provide profit margin optimization suggestions:\n\n"
        f"Recipe: {breakdown.name}\n"
        f"Category: {breakdown.category}\n"
        f"Current Menu Price: {price}\n"
        f"Total Ingredient Cost: ${breakdown.total_cost:.2f}\n"
        f"Food Cost Percentage: {pct}\n"
        f"Yield: {breakdown.yield_amount:g} {breakdown.yield_unit}\n\n"
        f"Ingredient Breakdown (sorted by cost):\n{lines}\n\n"
        "Provide 3-5 specific, actionable suggestions to improve the profit margin on this dish."
    )


def margin_from_arguments(args: Dict[str, Any]) -> MarginOptimization:
    try:
        return MarginOptimization(
            summary=args.get("summary") or "",
            target_food_cost_pct=args.get("targetFoodCostPct", args.get("target_food_cost_pct")),
            potential_savings=args.get("potentialSavings", args.get("potential_savings")),
            suggestions=[
                {
                    "type": s.get("type"),
                    "title": s.get("title"),
                    "description": s.get("description"),
                    "impact": s.get("impact"),
                    "estimated_savings": s.get("estimatedSavings", s.get("estimated_savings")),
                }
                for s in args.get("suggestions") or []
            ],
        )
    except (ValueError, AttributeError) as e:
        raise AIGatewayError("Unexpected AI response format", status_code=502) from e


async def optimize_margins(breakdown: RecipeCostBreakdown) -> MarginOptimization:
    logger.info("Analyzing recipe for margin optimization: %s", breakdown.name)
    message = await chat_completion(
        [
            {"role": "system", "content": MARGIN_SYSTEM_PROMPT},
            {"role": "user", "content": _margin_prompt(breakdown)},
        ],
        tools=[MARGIN_TOOL],
        tool_choice={"type": "function", "function": {"name": "provide_optimization_suggestions"}},
    )
    return margin_from_arguments(tool_call_arguments(message, "provide_optimization_suggestions"))


def parse_recipe_steps(content: str) -> List[RecipeStep]:
    """JSON {"steps": [...]} when possible, otherwise a numbered list."""
    match = re.search(r"\{[\s\S]*\}", content or "")
    if match:
        try:
            parsed = json.loads(match.group(0))
            steps = [
                RecipeStep(step=int(s.get("step") or i + 1), instruction=str(s.get("instruction") or "").strip())
                for i, s in enumerate(parsed.get("steps") or [])
                if isinstance(s, dict)
            ]
            return [s for s in steps if s.instruction]
        except (ValueError, AttributeError):
            logger.warning("Recipe steps reply was not valid JSON, falling back to numbered lines")

    lines = [line for line in (content or "").splitlines() if _NUMBERED_LINE.match(line)]
    return [
        RecipeStep(step=i + 1, instruction=_NUMBERED_LINE.sub("", line).strip())
        for i, line in enumerate(lines)
        if _NUMBERED_LINE.sub("", line).strip()
    ]


async def generate_recipe_steps(
    recipe_name: str,
    category: str,
    ingredients: List[Dict[str, Any]],
    yield_amount: float,
    yield_unit: str,
    prep_time: Optional[int] = None,
) -> List[RecipeStep]:
    listing = "\n".join(f"{i['quantity']:g} {i['unit']} {i['name']}" for i in ingredients)
    prompt = (
        "Generate professional cooking instructions for this recipe:\n\n"
        f"Recipe: {recipe_name}\n"
        f"Category: {category}\n"
        f"Yield: {yield_amount:g} {yield_unit}\n"
        f"{f'Prep Time: {prep_time} minutes' if prep_time else ''}\n\n"
        f"Ingredients:\n{listing}\n\n"
        "Provide clear, numbered step-by-step cooking instructions. Be concise but thorough. "
        "Include timing and temperatures where relevant. Format as a JSON object with a \"steps\" array "
        "containing objects with \"step\" (number) and \"instruction\" (string) properties."
    )
    content = await complete(RECIPE_STEPS_SYSTEM_PROMPT, prompt)
    return parse_recipe_steps(content)


def steps_to_instructions(steps: List[RecipeStep]) -> str:
    return "\n".join(f"{s.step}. {s.instruction}" for s in steps)

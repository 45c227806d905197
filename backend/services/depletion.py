"""Turns sold recipe quantities into ingredient stock decreases."""
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import RecipeNotFoundError
from core.logger import get_logger
from db.ingredient import Ingredient
from db.recipe import Recipe
from db.recipe_ingredient import RecipeIngredient
from schemas.sales import DepletedIngredient, ProcessSaleResult, SaleItem
from services.ledger import apply_stock_change, decrease

logger = get_logger("depletion")


class DepletionProcessor:
    """
    Depletes stock for a batch of sale items inside one transaction.

    For every composition line of every sold recipe the consumed amount is
    `line quantity x units sold`. Stock is decreased through the ledger (one
    `sale` audit row per line), and the batch is committed at the end. Any
    failure rolls the whole batch back and propagates.

    Processing the same items twice depletes twice.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _composition(self, recipe_id: UUID):
        res = await self.db.execute(select(Recipe.id, Recipe.name).where(Recipe.id == recipe_id))
        recipe = res.one_or_none()
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)

        # Inner join drops lines whose ingredient no longer exists
        res = await self.db.execute(
            select(RecipeIngredient.ingredient_id, RecipeIngredient.quantity, RecipeIngredient.unit)
            .join(Ingredient, Ingredient.id == RecipeIngredient.ingredient_id)
            .where(RecipeIngredient.recipe_id == recipe_id)
            .order_by(RecipeIngredient.sort_order, RecipeIngredient.id)
        )
        return recipe.name, res.all()

    async def _deplete_item(
        self, item: SaleItem, user_id: Optional[UUID], source: Optional[str]
    ) -> List[DepletedIngredient]:
        db_name, lines = await self._composition(item.recipe_id)
        recipe_name = item.recipe_name or db_name
        sold = float(item.quantity)
        notes = f"Auto-depleted from POS sale of {sold:g}x {recipe_name}"
        if source:
            notes = f"{notes} ({source})"

        depleted: List[DepletedIngredient] = []
        for line in lines:
            consumed = float(line.quantity) * sold
            change = await apply_stock_change(
                self.db,
                line.ingredient_id,
                decrease(consumed),
                event_type="sale",
                source=f"Sale: {recipe_name}",
                notes=notes,
                user_id=user_id,
            )
            depleted.append(
                DepletedIngredient(
                    ingredient_id=change.ingredient_id,
                    ingredient_name=change.ingredient_name,
                    quantity_depleted=consumed,
                    quantity_applied=change.previous_stock - change.new_stock,
                    new_stock=change.new_stock,
                    shortfall=change.shortfall,
                )
            )
            if change.shortfall > 0:
                logger.warning(
                    "%s short by %g %s while depleting %s",
                    change.ingredient_name, change.shortfall, line.unit, recipe_name,
                )
        return depleted

    async def process_sale(
        self,
        items: Iterable[SaleItem],
        *,
        user_id: Optional[UUID] = None,
        source: Optional[str] = None,
    ) -> ProcessSaleResult:
        """`source` names where the sale came from (a POS order, a sales event) and is appended to the audit notes."""
        items = list(items)
        depleted: List[DepletedIngredient] = []
        try:
            for item in items:
                depleted.extend(await self._deplete_item(item, user_id, source))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Depleted %d ingredient line(s) for %d sale item(s)", len(depleted), len(items))
        return ProcessSaleResult(success=True, depleted_ingredients=depleted)

"""Read-only product lookups against the knowledge store."""

from typing import (
    Any,
    Dict,
)

from skillengine.core.schema import SkillResult
from skillengine.services.knowledge import (
    KnowledgeItem,
    render_item,
)
from skillengine.skills import register_skill
from skillengine.skills.context import SkillContext
from skillengine.skills.validation import (
    format_brl,
    require_text,
)

PRODUCT_CATEGORY = "product"
_LIST_LIMIT = 50


def _product_view(item: KnowledgeItem) -> Dict[str, Any]:
    return {"id": item.id, "description": render_item(item), **item.value}


@register_skill("search_products")
async def search_products(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    query = require_text(args, "query")
    found = await ctx.services.knowledge.search(ctx.workspace_id, query, 5, PRODUCT_CATEGORY)
    products = [_product_view(item) for item in found.items]
    return SkillResult(
        success=True,
        data={"products": products},
        message=f"Encontrados {len(products)} produtos",
    )


@register_skill("get_product_details")
async def get_product_details(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    name = require_text(args, "productName")
    found = await ctx.services.knowledge.search(ctx.workspace_id, name, 1, PRODUCT_CATEGORY)
    if not found.items:
        return SkillResult.failure("Produto não encontrado")

    product = _product_view(found.items[0])
    price = product.get("price")
    if isinstance(price, (int, float)) and not isinstance(price, bool):
        message = f"{product.get('name', name)}: {format_brl(price)}"
    else:
        message = f"{product.get('name', name)}: preço não cadastrado"
    return SkillResult(success=True, data=product, message=message)


@register_skill("list_all_products")
async def list_all_products(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    found = await ctx.services.knowledge.search(ctx.workspace_id, "", _LIST_LIMIT, PRODUCT_CATEGORY)
    products = [_product_view(item) for item in found.items]
    return SkillResult(
        success=True,
        data={"products": products},
        message=f"{len(products)} produtos cadastrados",
    )

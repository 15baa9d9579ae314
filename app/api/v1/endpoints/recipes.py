from fastapi import APIRouter, Depends, status

from app.api.deps import Services, get_current_member, get_services, to_http_error
from app.core.errors import MembershipError
from app.models.member import Member
from app.models.recipe import RecipeCreate, RecipePost
from app.schemas.recipe import RecipeFeedResponse

router = APIRouter()


@router.get("/today", response_model=RecipeFeedResponse)
async def todays_recipes(services: Services = Depends(get_services)):
    """Today's posts and the shared daily pool"""
    feed = services.recipes
    return RecipeFeedResponse(
        date=services.clock.today_key(),
        posts=feed.todays_posts(),
        today_count=feed.todays_count(),
        daily_limit=feed.daily_limit,
        limit_reached=feed.is_post_limit_reached,
    )


@router.post("", response_model=RecipePost, status_code=status.HTTP_201_CREATED)
async def submit_recipe(
    body: RecipeCreate,
    services: Services = Depends(get_services),
    member: Member = Depends(get_current_member),
):
    try:
        return await services.recipes.submit(member, body)
    except MembershipError as e:
        raise to_http_error(e)


@router.post("/{recipe_id}/like", response_model=RecipePost)
async def like_recipe(recipe_id: int, services: Services = Depends(get_services)):
    try:
        return await services.recipes.like(recipe_id)
    except MembershipError as e:
        raise to_http_error(e)

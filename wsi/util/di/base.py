from dishka import Provider as DishkaProvider

from wsi.util.di.scope import Scope


class Provider(DishkaProvider):
    """Providers default to APP; per-session dependencies opt into UOW explicitly."""

    scope = Scope.APP

"""Starter category sets offered during onboarding."""
from typing import NamedTuple, Tuple


class CategorySeed(NamedTuple):
    name: str
    icon: str
    color: str


class CategoryTemplate(NamedTuple):
    id: str
    name: str
    description: str
    icon: str
    income_categories: Tuple[CategorySeed, ...]
    expense_categories: Tuple[CategorySeed, ...]

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'icon': self.icon,
            'income_categories': [seed._asdict() for seed in self.income_categories],
            'expense_categories': [seed._asdict() for seed in self.expense_categories],
        }


CATEGORY_TEMPLATES = (
    CategoryTemplate(
        id='basic',
        name='Базовый',
        description='Стандартный набор для начала',
        icon='wallet',
        income_categories=(
            CategorySeed('Зарплата', 'briefcase', '#10B981'),
            CategorySeed('Аванс', 'banknote', '#06B6D4'),
            CategorySeed('Подработка', 'laptop', '#8B5CF6'),
        ),
        expense_categories=(
            CategorySeed('Продукты', 'shopping-cart', '#F59E0B'),
            CategorySeed('Транспорт', 'car', '#3B82F6'),
            CategorySeed('Жильё', 'home', '#EF4444'),
            CategorySeed('Развлечения', 'gamepad-2', '#EC4899'),
            CategorySeed('Накопления', 'piggy-bank', '#22C55E'),
            CategorySeed('Прочее', 'more-horizontal', '#6B7280'),
        ),
    ),
    CategoryTemplate(
        id='freelancer',
        name='Для фрилансера',
        description='Учитывает налоги и инструменты',
        icon='laptop',
        income_categories=(
            CategorySeed('Проекты', 'folder', '#10B981'),
            CategorySeed('Консультации', 'message-circle', '#06B6D4'),
            CategorySeed('Пассивный доход', 'trending-up', '#8B5CF6'),
        ),
        expense_categories=(
            CategorySeed('Налоги', 'file-text', '#EF4444'),
            CategorySeed('Инструменты', 'wrench', '#3B82F6'),
            CategorySeed('Образование', 'book-open', '#8B5CF6'),
            CategorySeed('Продукты', 'shopping-cart', '#F59E0B'),
            CategorySeed('Жильё', 'home', '#EC4899'),
            CategorySeed('Накопления', 'piggy-bank', '#22C55E'),
            CategorySeed('Прочее', 'more-horizontal', '#6B7280'),
        ),
    ),
    CategoryTemplate(
        id='family',
        name='Семейный',
        description='Для семьи с детьми',
        icon='users',
        income_categories=(
            CategorySeed('Зарплата (муж)', 'briefcase', '#10B981'),
            CategorySeed('Зарплата (жена)', 'briefcase', '#06B6D4'),
            CategorySeed('Пособия', 'gift', '#8B5CF6'),
        ),
        expense_categories=(
            CategorySeed('Продукты', 'shopping-cart', '#F59E0B'),
            CategorySeed('Дети', 'baby', '#EC4899'),
            CategorySeed('Жильё', 'home', '#EF4444'),
            CategorySeed('Медицина', 'heart-pulse', '#14B8A6'),
            CategorySeed('Отпуск', 'plane', '#3B82F6'),
            CategorySeed('Накопления', 'piggy-bank', '#22C55E'),
            CategorySeed('Прочее', 'more-horizontal', '#6B7280'),
        ),
    ),
)


def get_template(template_id: str):
    for template in CATEGORY_TEMPLATES:
        if template.id == template_id:
            return template
    return None

from __future__ import annotations

"""Canned Spanish replies and catalog renderers shared by the conversation flows."""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .catalog import CatalogIndex, Category, Product
from .utils import format_price


@dataclass(frozen=True)
class Reply:
    """Outbound payload for the transport: text plus optional image and document refs."""
    text: str
    image_ref: Optional[str] = None
    document_ref: Optional[str] = None


CATEGORY_EMOJIS = {
    "Miel de Abeja": "🍯",
    "Cake": "🍰",
    "Alfajores": "🍬",
    "Manjar de Leche": "🥛",
    "Propóleo": "🌿",
    "Cruces de Tagua": "✝️",
    "Cerámicas": "🏺",
    "Cactus": "🌵",
    "Cirios Pascuales": "🕯️",
    "Cirios Litúrgicos": "🕯️",
}

HELP_MESSAGE = (
    "📌 *¿Cómo comprar?*\n\n"
    "1️⃣ Escribe *ver productos* para ver el catálogo completo.\n"
    "2️⃣ Escribe *ver imágenes* para elegir una categoría y ver sus fotos.\n"
    "3️⃣ Escribe *quiero comprar* seguido del nombre del producto.\n"
    "4️⃣ O usa *añadir [cantidad] [producto]* para añadirlo directamente al carrito.\n"
    "5️⃣ Escribe *carrito* para revisar tu pedido y *quitar [número]* para quitar un producto.\n"
    "6️⃣ Cuando estés listo, escribe *finalizar compra*.\n\n"
    "También puedes escribir *buscar [palabra]* para encontrar productos.\n"
    "Para cancelar, escribe *vaciar carrito*."
)

GENERIC_APOLOGY = "Lo siento, ocurrió un problema al procesar tu mensaje. Por favor, inténtalo de nuevo. 🙏"
EMPTY_CART_CHECKOUT = "Tu carrito está vacío. Añade productos antes de finalizar la compra."
CART_CLEARED = "🗑️ Tu carrito ha sido vaciado. Puedes seguir explorando nuestros productos."
CATEGORY_NOT_FOUND = "❌ Categoría no encontrada. Por favor, elige una categoría válida del menú."
ASK_QUANTITY_AGAIN = "Por favor, responde con un número válido de unidades (ejemplo: 2)."
ADD_USAGE = (
    "Para añadir un producto, escribe: *añadir [producto]* o *añadir [cantidad] [producto]*\n"
    "Ejemplos:\n"
    "• añadir Frasco de 500 ml\n"
    "• añadir 2 Frasco de 500 ml"
)
REMOVE_USAGE = (
    "Para quitar un producto, escribe: *quitar [número]*\n"
    "El número es la posición del producto en el carrito.\n"
    "Ejemplo: quitar 1"
)
REMOVE_INVALID_NUMBER = "Por favor, indica un número válido. Ejemplo: *quitar 1*"
REMOVE_NOT_FOUND = "❌ No encontré ese producto en tu carrito. Verifica el número."
SEARCH_USAGE = "Para buscar, escribe: *buscar [palabra]*. Ejemplo: buscar miel"
CHECKOUT_REPROMPT = "Por favor, proporciona la información solicitada para continuar con tu pedido."
ORDER_CANCELLED = (
    "❌ Tu pedido ha sido cancelado y el carrito se ha vaciado.\n\n"
    "Puedes seguir explorando nuestros productos cuando quieras. Escribe *ver productos*."
)
CUSTOMER_DATA_PROMPT = (
    "Por favor, proporciona los siguientes datos para finalizar tu compra:\n\n"
    "1️⃣ *Tu nombre completo* (mínimo 3 caracteres)\n"
    "2️⃣ *Tu dirección de entrega* (o indica si recogerás en el Monasterio)\n"
    "3️⃣ *Tu número de teléfono* (formato válido)\n\n"
    "Ejemplo:\n"
    "María Pérez\n"
    "Calle Principal 123, Ciudad\n"
    "0991234567\n\n"
    "Nota: Es muy importante proporcionar la información completa para procesar tu pedido."
)
INVALID_CUSTOMER_DATA = (
    "⚠️ No pude validar tus datos. Revisa que el nombre tenga al menos 3 letras "
    "y que el teléfono sea válido.\n\n" + CUSTOMER_DATA_PROMPT
)
ORDER_NEEDS_DETAIL = (
    "Por favor, especifica qué producto deseas comprar.\n\n"
    "Escribe *ver productos* para ver el catálogo completo, y luego\n"
    "escribe *quiero comprar* seguido del nombre exacto del producto.\n\n"
    'Ejemplo: "quiero comprar Frasco de 500 ml"'
)
ORDER_NOT_FOUND = (
    "Lo siento, no encontré ese producto en nuestro catálogo.\n\n"
    "👉 Asegúrate de escribir el nombre exacto como aparece en el catálogo.\n\n"
    "Escribe *ver productos* para consultar los productos disponibles.\n"
    'Recuerda que debes usar el formato: "quiero comprar [nombre exacto del producto]"\n\n'
    "Para obtener ayuda, escribe: *ayuda*"
)


def category_emoji(name: str) -> str:
    return CATEGORY_EMOJIS.get(name, "📦")


def product_line(product: Product) -> str:
    """One bullet per product; variant products list their options indented."""
    if not product.has_variants:
        return f"- {product.name}: {format_price(product.price)}"
    options = "\n".join(f"   • {variant.name}: {format_price(variant.price)}" for variant in product.variants)
    return f"- {product.name}:\n{options}"


def render_catalog(catalog: CatalogIndex) -> str:
    """Purpose: Render the full catalog grouped by category.
    Inputs/Outputs: Input is the CatalogIndex; output is the "ver productos" message.
    Side Effects / State: None.
    Dependencies: Uses product_line and category_emoji.
    Failure Modes: An empty catalog renders an explicit notice instead of a blank list.
    If Removed: The "ver productos" command has nothing to show.
    Testing Notes: Every category name and product name appears in the output.
    """
    if not len(catalog):
        return "Lo siento, el catálogo no está disponible en este momento."
    parts = ["📦 *Productos disponibles:*\n"]
    for category in catalog.categories():
        parts.append(f"{category_emoji(category.name)} *{category.name}*")
        parts.extend(product_line(product) for product in category.products)
        parts.append("")
    parts.append("Para ver imágenes, escribe: *ver imágenes*\n")
    parts.append("📌 *¿Cómo hacer un pedido?*")
    parts.append("Escribe *quiero comprar* seguido del nombre exacto del producto.")
    parts.append('Ejemplo: "quiero comprar Frasco de 500 ml"\n')
    parts.append("Para más ayuda, escribe: *ayuda*")
    return "\n".join(parts)


def render_category_menu(catalog: CatalogIndex) -> str:
    lines = ["📷 *¿De qué categoría deseas ver imágenes?*\n"]
    lines.extend(f"{position}. {name}" for position, name in enumerate(catalog.category_names(), start=1))
    example = catalog.category_names()[0] if len(catalog) else "Cake"
    lines.append("\nEscribe el número o nombre de la categoría.")
    lines.append(f"Ejemplo: 1 o {example}")
    return "\n".join(lines)


def render_category_products(category: Category) -> str:
    lines = [f"🛒 *Productos de {category.name}:*\n"]
    lines.extend(product_line(product) for product in category.products)
    lines.append("\n💬 Para hacer un pedido, escribe: *quiero comprar* seguido del producto.")
    return "\n".join(lines)


def render_product_card(product: Product) -> str:
    lines = [f"📦 *{product.name}*", f"🏷️ Categoría: {product.category}"]
    if product.has_variants:
        lines.append("Opciones disponibles:")
        lines.extend(f"   • {variant.name}: {format_price(variant.price)}" for variant in product.variants)
    else:
        lines.append(f"💰 Precio: {format_price(product.price)}")
    lines.append(f'\n💬 Para pedirlo, escribe: *quiero comprar {product.name}*')
    return "\n".join(lines)


def render_quantity_prompt(name: str, price_text: str, category: str) -> str:
    return (
        "✅ *Producto encontrado:*\n\n"
        f"📦 {name}\n"
        f"💰 Precio: {price_text}\n"
        f"🏷️ Categoría: {category}\n\n"
        "*¿Cuántas unidades deseas añadir al carrito?*\n"
        "Responde con un número (ejemplo: 2)"
    )


def render_category_suggestions(category: Category) -> str:
    suggestions = "\n".join(product_line(product) for product in category.products)
    example = category.products[0].name if category.products else "un producto específico"
    header = f"No has especificado qué producto de *{category.name}* deseas comprar.\n\n"
    if suggestions:
        header += f"Algunos productos de esta categoría:\n\n{suggestions}\n\n"
    return (
        header
        + "Por favor, escribe *quiero comprar* seguido del nombre exacto del producto.\n"
        + f'Ejemplo: "Quiero comprar {example}"'
    )


def render_variant_options(product: Product) -> str:
    options = "\n".join(f"• {variant.name}: {format_price(variant.price)}" for variant in product.variants)
    first = product.variants[0].name if product.variants else ""
    return (
        f"*{product.name}* está disponible en varias opciones:\n\n{options}\n\n"
        "Por favor, indica la opción que deseas.\n"
        f'Ejemplo: "quiero comprar {product.name} {first}"'
    )


def render_search_results(term: str, results: Iterable[Product]) -> str:
    found: List[str] = []
    for product in results:
        if product.has_variants:
            price = " / ".join(format_price(variant.price) for variant in product.variants)
        else:
            price = format_price(product.price)
        found.append(f"📦 {product.name}\n💰 Precio: {price}\n🏷️ Categoría: {product.category}\n")
    if not found:
        return (
            f'No encontré productos que coincidan con "{term}". '
            "Escribe *ver productos* para ver todo nuestro catálogo."
        )
    return (
        f'🔍 *Resultados de búsqueda para "{term}":*\n\n'
        + "\n".join(found)
        + "\nPara comprar, escribe: *quiero comprar* seguido del nombre del producto."
    )

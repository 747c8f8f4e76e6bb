import asyncio
import aiohttp
from app.core.logging_config import logger
from app.core.config import settings
from app.models.tenders import Tender


async def send_telegram_alert(tender: Tender, message: str) -> None:
    """Best-effort: ошибки доставки логируются и не прерывают операцию."""
    if not settings.TELEGRAM_BOT_TOKEN or not settings.TELEGRAM_CHAT_ID:
        logger.info(f"Telegram not configured, skipping notification for tender {tender.id}")
        return

    full_message = (
        f"Anskaffelse: {tender.id}\n"
        f"Tittel: {tender.title}\n"
        f"Status: {tender.status}\n"
        f"Melding: {message}"
    )

    url = f"https://api.telegram.org/bot{settings.TELEGRAM_BOT_TOKEN}/sendMessage"
    payload = {
        "chat_id": settings.TELEGRAM_CHAT_ID,
        "text": full_message,
    }

    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(url, json=payload, timeout=aiohttp.ClientTimeout(total=10)) as response:
                if response.status != 200:
                    logger.error(f"Failed to send Telegram alert: HTTP {response.status}, {await response.text()}")
                else:
                    logger.info(f"Telegram alert sent for tender {tender.id}: {message}")
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error(f"Error sending Telegram alert for tender {tender.id}: {str(e)}")


async def notify_tender_invitation(tender: Tender, company_name: str, email: str) -> None:
    await send_telegram_alert(tender, f"Invitasjon sendt til {company_name or email}")


async def notify_new_bid(tender: Tender, company_name: str | None, price: float) -> None:
    await send_telegram_alert(tender, f"Nytt tilbud fra {company_name or 'ukjent leverandør'}: {price:,.0f} NOK")


async def notify_bid_awarded(tender: Tender, company_name: str | None, standstill_end_date) -> None:
    await send_telegram_alert(
        tender,
        f"Kontrakt tildelt {company_name or 'leverandør'}. "
        f"Ventetiden utløper {standstill_end_date.strftime('%d.%m.%Y')}"
    )


async def notify_question(tender: Tender, text: str) -> None:
    await send_telegram_alert(tender, text)


async def notify_deadline_reminder(tender: Tender, days_until_deadline: int, pending: int) -> None:
    if days_until_deadline == 0:
        when = "går ut i dag"
    elif days_until_deadline == 1:
        when = "går ut i morgen"
    else:
        when = f"går ut om {days_until_deadline} dager"
    await send_telegram_alert(tender, f"Tilbudsfristen {when}. {pending} inviterte har ikke levert tilbud")

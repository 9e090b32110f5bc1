import os
import logging
import tempfile
from fastapi import HTTPException, File, Form, UploadFile, BackgroundTasks, APIRouter, Depends
from pydantic import SecretStr
from sqlmodel import Session
from starlette.responses import JSONResponse
from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType

# external imports
from api.security import get_current_user
from config.report_html import HTML
from config.settings import Settings, get_settings
from db.database import get_session
from db.models import User
from services.history import get_scan

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/report', tags=["report"])

HTML_TEMPLATE = HTML


def mail_config(settings: Settings) -> ConnectionConfig:
    # Built per report: ConnectionConfig validates the sender address, which is empty in dev
    return ConnectionConfig(
        MAIL_USERNAME=settings.mail_username,
        MAIL_PASSWORD=SecretStr(settings.mail_password),
        MAIL_FROM=settings.mail_from or settings.mail_username,
        MAIL_PORT=settings.mail_port,
        MAIL_SERVER=settings.mail_server,
        MAIL_FROM_NAME=settings.mail_from_name,
        MAIL_STARTTLS=True,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=True,
        VALIDATE_CERTS=True,
    )


@router.post("/")
async def send_report(
    background_tasks: BackgroundTasks,
    scan_id: str = Form(...),
    location: str = Form(...),
    box_image: UploadFile | None = File(None),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Sends one of the caller's flagged scans to the regulator by email.

    Args:
        scan_id: Id of the scan record to report
        location: Location where the drug was found
        box_image: Photo of the packaging (optional)
    """

    scan = get_scan(session, scan_id)
    if not scan or scan.user_id != current_user.id:
        raise HTTPException(status_code=404, detail=f"Scan '{scan_id}' not found.")
    if not scan.is_flagged:
        raise HTTPException(status_code=400, detail="Only scans flagged as suspect can be reported.")

    # Validate regulator email is configured
    if not settings.regulator_email:
        raise HTTPException(
            status_code=500,
            detail="Regulator email not configured. Set REGULATOR_EMAIL environment variable."
        )

    box_image_bytes = await box_image.read() if box_image else None

    # Format the email body using the template
    try:
        html_body = HTML_TEMPLATE.format(
            drug_name=scan.drug_name or "N/A",
            manufacturer=scan.manufacturer or "N/A",
            barcode=scan.barcode,
            reason=scan.reason or "N/A",
            source_model=scan.source_model or "N/A",
            timestamp=scan.timestamp.strftime("%Y-%m-%d %H:%M"),
            location=location or "N/A",
            reporter=current_user.fullname,
            scan_id=scan.id,
            attachment_note="A photo of the packaging is attached." if box_image_bytes else "No photo was provided.",
        )
    except KeyError as e:
        raise HTTPException(
            status_code=500,
            detail=f"Email template error: missing placeholder {str(e)}"
        )

    if settings.dev_mode:
        # Development mode: skip actual email sending, just log
        def log_report():
            logger.info(
                "DEV MODE: report for scan %s (%s) to %s not sent; location=%s, attachments=%d, body=%d chars",
                scan_id, scan.drug_name, settings.regulator_email, location,
                1 if box_image_bytes else 0, len(html_body),
            )
        background_tasks.add_task(log_report)
        return JSONResponse(status_code=200, content={"message": "Report has been queued for sending."})

    # Save the image to a temporary file (fastapi-mail needs file paths)
    temp_files = []
    if box_image_bytes:
        try:
            box_temp = tempfile.NamedTemporaryFile(delete=False, suffix='.jpg', mode='wb')
            box_temp.write(box_image_bytes)
            box_temp.close()
            temp_files.append(box_temp.name)
        except OSError as e:
            raise HTTPException(
                status_code=500,
                detail=f"Error preparing attachments: {str(e)}"
            )

    message = MessageSchema(
        subject=f"CRITICAL: Suspect Drug Report ({scan.drug_name})",
        recipients=[settings.regulator_email],
        body=html_body,
        subtype=MessageType.html,
        attachments=temp_files
    )
    fm = FastMail(mail_config(settings))

    # Background task to send email and cleanup temp files
    async def send_and_cleanup():
        try:
            await fm.send_message(message)
            logger.info("Report for scan %s sent to %s", scan_id, settings.regulator_email)
        except Exception:
            logger.exception("Error sending report for scan %s", scan_id)
        finally:
            for temp_file in temp_files:
                try:
                    os.unlink(temp_file)
                except OSError:
                    logger.warning("Could not remove temporary file %s", temp_file)

    # Add to background tasks so the user isn't waiting
    background_tasks.add_task(send_and_cleanup)

    return JSONResponse(status_code=200, content={"message": "Report has been queued for sending."})

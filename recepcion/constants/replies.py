"""Default reply copy. Placeholders are filled by ``ReplyRenderer``."""

from __future__ import annotations


class DefaultReplies:
    """Spanish (es-AR) reply templates keyed by name. Lists hold random variants."""

    TEMPLATES: dict[str, str | list[str]] = {
        "menu": (
            "Hola 👋 Soy la recepción automática de {clinic_name}.\n"
            "Elegí una opción (respondé con un número):\n\n"
            "1) Sacar turno (especialidades)\n"
            "2) Estudios (eco, doppler, ECG, laboratorio, etc.)\n"
            "3) Estética\n"
            "4) Obras sociales / prepagas\n"
            "5) Dirección y horarios\n"
            "6) Hablar con recepción\n\n"
            "0) Menú\n\n"
            "Si es una urgencia, no uses este chat: llamá al 107 o acudí a guardia."
        ),
        "greeting": [
            "¡Hola! 👋 Soy la recepción automática de {clinic_name}.\n"
            "Decime qué necesitás o respondé con un número:\n\n"
            "1) Sacar turno\n2) Estudios\n3) Estética\n4) Obras sociales\n"
            "5) Dirección/horarios\n6) Recepción",
            "¡Buenas! 👋 Estoy para ayudarte rápido.\nRespondé:\n"
            "1) Turno\n2) Estudios\n3) Estética\n4) Obras sociales\n"
            "5) Dirección/horarios\n6) Recepción",
            "Hola 👋 Bienvenido/a a {clinic_name}.\n"
            "¿Querés turno o info? (Respondé con número)\n"
            "1) Turno · 2) Estudios · 3) Estética · 4) Obras sociales · "
            "5) Dirección/horarios · 6) Recepción",
        ],
        "closing": [
            "¡De nada! ✅ Si necesitás algo más, escribí “menú”.",
            "Perfecto 🙌 Cualquier cosa, escribime “menú” y te ayudo.",
            "Listo ✅ Te leo cuando quieras. (Escribí “menú” para ver opciones)",
        ],
        "deposit_policy": (
            "Seña para confirmar: ${amount}. No reintegrable. "
            "Transferible si reprogramás con {transferable_hours} hs de anticipación."
        ),
        "contact": (
            "📍 {clinic_address}\n"
            "🕒 {clinic_hours}\n"
            "📞 Tel: {clinic_phone}\n"
            "✉️ Email: {clinic_email}"
        ),
        "booking_link": (
            "Perfecto: {label}.{service_hint}\n\n"
            "Para sacar turno rápido usá MrTurno:\n{booking_url}{deposit_line}\n\n"
            "Cuando lo tengas reservado, escribime “LISTO” para confirmarlo por acá."
        ),
        "ask_service_label": (
            "Si querés, contame la especialidad o el estudio "
            "(por ejemplo “cardiología” o “ecografía”) y lo dejo anotado."
        ),
        "service_noted": (
            "Anotado: {label}. Cuando tengas el turno reservado en MrTurno "
            "({booking_url}), escribime “LISTO” y seguimos."
        ),
        "booking_reminder": (
            "Cuando tengas el turno reservado en MrTurno ({booking_url}), "
            "escribime “LISTO” y seguimos.\n"
            "Si preferís hablar con una persona, escribí “recepción”."
        ),
        "ask_patient_type": (
            "¡Genial! ¿Cómo te vas a atender?\n\n"
            "1) Particular\n"
            "2) Obra social / prepaga\n\n"
            "0) Menú"
        ),
        "ask_os_name": (
            "¿Cuál es tu obra social o prepaga? (ej: OSDE, Swiss Medical, Galeno)"
        ),
        "ask_os_name_retry": (
            "Necesito el nombre de la obra social o prepaga (no el número). "
            "Por ejemplo: OSDE, Galeno, SanCor Salud."
        ),
        "ask_os_token": (
            "Perfecto: {os_name}.\n"
            "Ahora enviame tu número de afiliado o token (y DNI si lo tenés a mano)."
        ),
        "payment_link": (
            "Perfecto ✅ Para confirmar el turno necesitamos la seña de ${amount}.\n\n"
            "{deposit_policy}\n\n"
            "💳 Pagá acá: {payment_link}\n\n"
            "📌 Después enviame:\n"
            "• Captura del comprobante (imagen) o\n"
            "• El número/ID de operación en texto"
        ),
        "payment_prompt": (
            "Para confirmar el turno necesitamos la seña de ${amount}.\n"
            "💳 Link de pago: {payment_link}\n\n"
            "Si ya la abonaste, enviá el comprobante (captura) o el ID de operación."
        ),
        "payment_pending": (
            "Gracias 🙌 Todavía estamos validando el pago{op_line}.\n"
            "Apenas Mercado Pago lo acredite queda confirmado.\n\n"
            "Si ya pasaron unos minutos, reenviá el ID de operación o escribí "
            "“recepción” para que te ayude una persona."
        ),
        "payment_reminder": (
            "Recordatorio ✅ Para confirmar el turno necesitamos la seña de ${amount}.\n"
            "{deposit_policy}\n\n"
            "💳 Link de pago: {payment_link}\n"
            "Si ya la abonaste, enviá el comprobante (captura o ID de operación)."
        ),
        "payment_failed": (
            "Tuvimos un problema generando el link de pago 🙈\n"
            "Ya avisamos a recepción: en breve una persona te contacta para "
            "completar la seña."
        ),
        "manual_review": (
            "Recibido ✅ No pudimos validar el pago automáticamente, así que lo "
            "revisa una persona de recepción. Te escribimos en breve."
        ),
        "confirmed": (
            "Listo ✅ Turno confirmado.\n"
            "🧾 Comprobante: {receipt_id}\n\n"
            "{contact}\n"
            "✅ Seña registrada: ${amount}.\n\n"
            "Si necesitás reprogramar, escribí “recepción”."
        ),
        "confirmed_no_deposit": (
            "Listo ✅ Turno registrado.\n"
            "🧾 Referencia: {receipt_id}\n\n"
            "{contact}\n\n"
            "Si necesitás reprogramar, escribí “recepción”."
        ),
        "insurers": (
            "Trabajamos con varias obras sociales/prepagas. Algunas frecuentes:\n"
            "{insurers}\n\n"
            "Si me decís cuál tenés, te confirmo si está."
        ),
        "aesthetics": (
            "Estética (algunos tratamientos):\n{aesthetics}\n\n"
            "¿Querés turno? Respondé “turno” y te paso MrTurno."
        ),
        "handoff_prompt": (
            "Listo ✅ Te paso con recepción.\n"
            "Contame en 1 línea qué necesitás (especialidad/estudio + día preferido)."
        ),
        "handoff_ack": (
            "Perfecto ✅ Ya quedó. En breve te responde recepción.\n\n"
            "Mientras tanto, si querés sacar turno rápido: {booking_url}"
        ),
        "media_received": "Recibido ✅ ¿Querés sacar turno o necesitás recepción?\n\n{menu}",
    }

"""HTML status and control page."""

from html import escape

from wapair.connection.state import ConnectionState


def render_status_page(
    *,
    service_name: str,
    version: str,
    state: ConnectionState,
    pairing_count: int,
    last_code: str | None,
    max_qr_attempts: int,
    code_ttl_minutes: float,
    calling_code: str,
) -> str:
    """Render the web page used to link the WhatsApp account.

    The page polls ``/status`` every 5 seconds, requests pairing codes from
    ``/generate-code`` and shows the QR image from ``/getqr``.
    """
    name = escape(service_name)
    ttl = f"{int(code_ttl_minutes):02d}:00"
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{name}</title>
    <style>
        * {{ box-sizing: border-box; }}
        body {{
            margin: 0;
            min-height: 100vh;
            display: flex;
            align-items: center;
            justify-content: center;
            background: linear-gradient(135deg, #075e54, #128c7e);
            font-family: system-ui, sans-serif;
            color: #222;
        }}
        .card {{
            width: min(480px, 94vw);
            background: #fff;
            border-radius: 16px;
            padding: 28px;
            box-shadow: 0 12px 40px rgba(0, 0, 0, 0.25);
        }}
        h1 {{ margin: 0 0 8px; font-size: 1.5rem; color: #075e54; }}
        .badge {{
            display: inline-block;
            padding: 6px 14px;
            border-radius: 999px;
            color: #fff;
            font-weight: 600;
            background: {state.status_color};
        }}
        .stats {{ display: flex; gap: 12px; margin: 18px 0; }}
        .stat {{ flex: 1; background: #f4f6f8; border-radius: 10px; padding: 10px; text-align: center; }}
        .stat b {{ display: block; font-size: 1.2rem; }}
        .phone {{ display: flex; gap: 8px; }}
        .phone span {{ padding: 12px; background: #eee; border-radius: 8px; }}
        input[type="tel"] {{ flex: 1; padding: 12px; border: 1px solid #ccc; border-radius: 8px; font-size: 1rem; }}
        button {{
            width: 100%;
            margin-top: 12px;
            padding: 12px;
            border: 0;
            border-radius: 8px;
            background: #25d366;
            color: #fff;
            font-size: 1rem;
            cursor: pointer;
        }}
        button.secondary {{ background: #34b7f1; }}
        #codeDisplaySection, #qrSection {{ display: none; text-align: center; margin-top: 20px; }}
        #pairingCodeDisplay {{ font-size: 2rem; letter-spacing: 4px; font-family: monospace; }}
        #qrImage {{ max-width: 280px; width: 100%; }}
        #notification {{ display: none; margin-top: 16px; padding: 10px; border-radius: 8px; }}
        footer {{ margin-top: 20px; font-size: 0.8rem; color: #888; text-align: center; }}
    </style>
</head>
<body>
<div class="card">
    <h1>{name}</h1>
    <span class="badge" id="statusBadge">{escape(state.status_text)}</span>

    <div class="stats">
        <div class="stat"><b id="pairingCount">{pairing_count}</b>Active codes</div>
        <div class="stat"><b id="lastCode">{escape(last_code or "None")}</b>Last code</div>
        <div class="stat"><b id="qrAttempts">{state.qr_attempt_count}</b>QR attempts / {max_qr_attempts}</div>
    </div>

    <label for="phoneNumber">Phone number</label>
    <div class="phone">
        <span>+{escape(calling_code)}</span>
        <input type="tel" id="phoneNumber" placeholder="723278526" autocomplete="tel">
    </div>
    <button onclick="generatePairingCode()">Get pairing code</button>
    <button class="secondary" onclick="showQRCode()">Show QR code</button>

    <div id="codeDisplaySection">
        <div id="pairingCodeDisplay"></div>
        <p id="codeInfo">Code expires in <span id="expiryTimer">{ttl}</span></p>
        <button class="secondary" onclick="copyToClipboard()">Copy code</button>
    </div>

    <div id="qrSection">
        <img id="qrImage" alt="WhatsApp QR code">
        <p>WhatsApp &rarr; Linked devices &rarr; Link a device</p>
    </div>

    <div id="notification"></div>
    <footer>v{escape(version)}</footer>
</div>
<script>
    const CALLING_CODE = "+{escape(calling_code)}";
    let currentCode = "";
    let expiryInterval = null;

    document.getElementById("phoneNumber").addEventListener("input", (e) => {{
        e.target.value = e.target.value.replace(/\\D/g, "");
    }});

    async function generatePairingCode() {{
        const input = document.getElementById("phoneNumber");
        const digits = input.value.replace(/\\D/g, "");
        if (!digits) {{ notify("Please enter your phone number", "error"); return; }}
        if (digits.length < 5) {{ notify("Phone number too short", "error"); return; }}
        const phoneNumber = digits.startsWith("0") ? digits : CALLING_CODE + digits;
        try {{
            const response = await fetch("/generate-code", {{
                method: "POST",
                headers: {{ "Content-Type": "application/json" }},
                body: JSON.stringify({{ phoneNumber }}),
            }});
            const data = await response.json();
            if (!data.success) {{ notify(data.message || "Failed to generate code", "error"); return; }}
            currentCode = data.displayCode;
            document.getElementById("pairingCodeDisplay").textContent = currentCode;
            document.getElementById("codeDisplaySection").style.display = "block";
            document.getElementById("qrSection").style.display = "none";
            startExpiryTimer(data.expiresAt);
            updateStats();
            notify("Pairing code generated: " + currentCode, "success");
        }} catch (error) {{
            notify("Network error. Please try again.", "error");
        }}
    }}

    async function showQRCode() {{
        try {{
            const data = await (await fetch("/getqr")).json();
            if (data.success && data.qrImage) {{
                document.getElementById("qrImage").src = data.qrImage;
                document.getElementById("qrSection").style.display = "block";
                document.getElementById("codeDisplaySection").style.display = "none";
            }} else {{
                notify(data.message || "QR code not available yet", "warning");
            }}
        }} catch (error) {{
            notify("Error loading QR code", "error");
        }}
    }}

    function copyToClipboard() {{
        if (!currentCode) {{ notify("No code to copy", "warning"); return; }}
        navigator.clipboard.writeText(currentCode).then(
            () => notify("Copied to clipboard: " + currentCode, "success"),
            () => notify("Could not copy to clipboard", "error"),
        );
    }}

    function startExpiryTimer(expiresAt) {{
        if (expiryInterval) clearInterval(expiryInterval);
        const expiry = new Date(expiresAt);
        const timer = document.getElementById("expiryTimer");
        const tick = () => {{
            const diff = expiry - new Date();
            if (diff <= 0) {{
                timer.textContent = "EXPIRED";
                clearInterval(expiryInterval);
                notify("This pairing code has expired. Generate a new one.", "warning");
                return;
            }}
            const m = Math.floor(diff / 60000), s = Math.floor((diff % 60000) / 1000);
            timer.textContent = String(m).padStart(2, "0") + ":" + String(s).padStart(2, "0");
        }};
        tick();
        expiryInterval = setInterval(tick, 1000);
    }}

    async function updateStats() {{
        try {{
            const data = await (await fetch("/status")).json();
            const badge = document.getElementById("statusBadge");
            badge.textContent = data.statusText || "Unknown";
            badge.style.background = data.statusColor || "#6c757d";
            document.getElementById("pairingCount").textContent = data.pairingCodes || 0;
            if (data.lastCode) document.getElementById("lastCode").textContent = data.lastCode;
            document.getElementById("qrAttempts").textContent = data.qrAttempts || 0;
        }} catch (error) {{
            console.log("Status update failed:", error);
        }}
    }}

    function notify(message, type) {{
        const colors = {{ success: "#d4edda", error: "#f8d7da", warning: "#fff3cd" }};
        const el = document.getElementById("notification");
        el.textContent = message;
        el.style.background = colors[type] || "#eee";
        el.style.display = "block";
        setTimeout(() => {{ el.style.display = "none"; }}, 3000);
    }}

    setInterval(updateStats, 5000);
    updateStats();
</script>
</body>
</html>
"""

HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <style>
        body {{ font-family: Helvetica, Arial, sans-serif; color: #222; margin: 0; padding: 16px; }}
        .report {{ max-width: 640px; margin: 0 auto; border: 1px solid #e0e0e0; border-radius: 6px; }}
        .banner {{ background: #b00020; color: #fff; padding: 14px 24px; font-size: 18px; font-weight: bold; }}
        .body {{ padding: 24px; }}
        .details td {{ padding: 8px 10px; border-bottom: 1px solid #f0f0f0; vertical-align: top; }}
        .details td.label {{ color: #666; white-space: nowrap; width: 35%; }}
        .verdict {{ background: #fff4f4; border-left: 4px solid #b00020; padding: 10px 14px; margin: 16px 0; }}
        .ref {{ color: #888; font-size: 12px; padding: 12px 24px; border-top: 1px solid #e0e0e0; }}
    </style>
</head>
<body>
    <div class="report">
        <div class="banner">URGENT: Suspect Drug Report</div>
        <div class="body">
            <p>To the Anti-Counterfeit Taskforce,</p>
            <p>Clinic staff using <strong>DrugVerify</strong> flagged the drug below as suspect and chose to report it.
            {attachment_note}</p>

            <div class="verdict"><strong>Why it was flagged:</strong> {reason}</div>

            <table class="details" width="100%" cellspacing="0">
                <tr><td class="label">Drug</td><td>{drug_name}</td></tr>
                <tr><td class="label">Manufacturer</td><td>{manufacturer}</td></tr>
                <tr><td class="label">Code (NDC / GTIN / NAFDAC)</td><td>{barcode}</td></tr>
                <tr><td class="label">Checked by</td><td>{source_model}</td></tr>
                <tr><td class="label">Scanned (UTC)</td><td>{timestamp}</td></tr>
                <tr><td class="label">Found at</td><td>{location}</td></tr>
                <tr><td class="label">Reported by</td><td>{reporter}</td></tr>
            </table>

            <p>The verdict is an automated screening result, not a regulatory determination.</p>
        </div>
        <div class="ref">DrugVerify report {scan_id}</div>
    </div>
</body>
</html>
"""
